"""Class-name tables and layer names for the packaged models."""

from __future__ import annotations


INPUT_LAYER = "input"
OUTPUT_NAMES = ("output_bboxes", "output_classes")

# Indexed by ModelDescriptor.output_group_index.
OUTPUT_LAYERS: tuple[tuple[str, str], ...] = (
    ("/heads/Mul", "/heads/Sigmoid"),
    ("Transpose_output_bboxes", "Transpose_output_classes"),
)

UNKNOWN_LABEL = "Unknown"

COCO_CLASS_NAMES: tuple[str, ...] = (
    "person",
    "bicycle",
    "car",
    "motorcycle",
    "airplane",
    "bus",
    "train",
    "truck",
    "boat",
    "traffic light",
    "fire hydrant",
    "stop sign",
    "parking meter",
    "bench",
    "bird",
    "cat",
    "dog",
    "horse",
    "sheep",
    "cow",
    "elephant",
    "bear",
    "zebra",
    "giraffe",
    "backpack",
    "umbrella",
    "handbag",
    "tie",
    "suitcase",
    "frisbee",
    "skis",
    "snowboard",
    "sports ball",
    "kite",
    "baseball bat",
    "baseball glove",
    "skateboard",
    "surfboard",
    "tennis racket",
    "bottle",
    "wine glass",
    "cup",
    "fork",
    "knife",
    "spoon",
    "bowl",
    "banana",
    "apple",
    "sandwich",
    "orange",
    "broccoli",
    "carrot",
    "hot dog",
    "pizza",
    "donut",
    "cake",
    "chair",
    "couch",
    "potted plant",
    "bed",
    "dining table",
    "toilet",
    "tv",
    "laptop",
    "mouse",
    "remote",
    "keyboard",
    "cell phone",
    "microwave",
    "oven",
    "toaster",
    "sink",
    "refrigerator",
    "book",
    "clock",
    "vase",
    "scissors",
    "teddy bear",
    "hair drier",
    "toothbrush",
)

HAGRID_CLASS_NAMES: tuple[str, ...] = (
    "call",
    "dislike",
    "fist",
    "four",
    "like",
    "mute",
    "ok",
    "one",
    "palm",
    "peace",
    "peace_inverted",
    "rock",
    "stop",
    "stop_inverted",
    "three",
    "three2",
    "two_up",
    "two_up_inverted",
    "no_gesture",
)

# Indexed by ModelDescriptor.output_group_index.
CLASS_NAME_TABLES: tuple[dict[int, str], ...] = (
    dict(enumerate(COCO_CLASS_NAMES)),
    dict(enumerate(HAGRID_CLASS_NAMES)),
)

# BGR colors for overlay drawing.
BOX_COLOR = (0, 0, 255)
LABEL_TEXT_COLOR = (0, 255, 255)
