"""Packaging setup with an optional Cython build."""

import logging
import os
import sys
from pathlib import Path

from setuptools import Extension, find_packages, setup


LOGGER = logging.getLogger(__name__)

# Accept several truthy values for CYTHONIZE (so "True", True, "1", "true" all work)
CYTHONIZE_RAW = os.getenv("CYTHONIZE", "0")
CYTHONIZE = str(CYTHONIZE_RAW).strip().lower() in ("1", "true", "yes", "on")

if CYTHONIZE:
    from Cython.Build import cythonize

dist_name = "DetectLens"
package_dir = "detectlens"
version = Path(__file__).with_name("VERSION.txt").read_text().strip()

install_requires = [
    "numpy>=1.26",
    "opencv-python>=4.8",
    "loguru>=0.7",
    "onnxruntime>=1.17",
]

test_deps = [
    "pytest>=8.0",
]


def list_py_files(package_dir: str | Path) -> list[str]:
    """Return Python source files under the package directory."""
    root = Path(package_dir)
    return [str(path) for path in root.rglob("*.py") if path.name != "__init__.py"]


setup_kwargs = {
    "name": dist_name,
    "version": version,
    "zip_safe": False,
    "python_requires": ">=3.10",
    "install_requires": install_requires,
    "extras_require": {"test": test_deps},
    "packages": find_packages(include=[package_dir, f"{package_dir}.*"]),
    "include_package_data": True,
    "entry_points": {"console_scripts": ["detectlens=detectlens.app:run_app"]},
}

if CYTHONIZE:
    if sys.platform == "win32":
        extra_compile_args = ["/O2", "/MD"]
        extra_link_args = ["/OPT:REF", "/OPT:ICF", "/LTCG:OFF"]
    else:
        extra_compile_args = ["-O3", "-flto", "-fvisibility=hidden"]
        extra_link_args = ["-flto"]

    extensions = [
        Extension(
            py_file.replace(os.path.sep, ".")[:-3],
            [py_file],
            extra_compile_args=extra_compile_args,
            extra_link_args=extra_link_args,
        )
        for py_file in list_py_files(package_dir)
    ]
    LOGGER.info("Cythonizing %d modules", len(extensions))
    setup_kwargs["ext_modules"] = cythonize(
        extensions,
        compiler_directives={
            "language_level": "3",
            "emit_code_comments": False,
            "binding": False,
            "annotation_typing": False,
        },
    )

setup(**setup_kwargs)
