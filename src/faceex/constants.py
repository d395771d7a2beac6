"""Shared constants and paths for FaceEx."""

from pathlib import Path

# Package paths
PACKAGE_DIR = Path(__file__).parent
ASSETS_DIR = PACKAGE_DIR / "assets"
CONFIG_DIR = ASSETS_DIR / "config"
SCHEMA_DIR = ASSETS_DIR / "schemas"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "default_config.json"
CONFIG_SCHEMA_NAME = "config_schema.json"
KEYFRAME_SCHEMA_NAME = "keyframe_schema.json"
SAVE_FILE_NAME = "action_units_config.json"

# Face mesh morph targets (Face Cap / ARKit order)
CHANNEL_NAMES = (
    "browInnerUp", "browDown_L", "browDown_R", "browOuterUp_L", "browOuterUp_R",
    "eyeLookUp_L", "eyeLookUp_R", "eyeLookDown_L", "eyeLookDown_R",
    "eyeLookIn_L", "eyeLookIn_R", "eyeLookOut_L", "eyeLookOut_R",
    "eyeBlink_L", "eyeBlink_R", "eyeSquint_L", "eyeSquint_R", "eyeWide_L", "eyeWide_R",
    "cheekPuff", "cheekSquint_L", "cheekSquint_R", "noseSneer_L", "noseSneer_R",
    "jawOpen", "jawForward", "jawLeft", "jawRight",
    "mouthFunnel", "mouthPucker", "mouthLeft", "mouthRight",
    "mouthRollUpper", "mouthRollLower", "mouthShrugUpper", "mouthShrugLower",
    "mouthClose", "mouthSmile_L", "mouthSmile_R", "mouthFrown_L", "mouthFrown_R",
    "mouthDimple_L", "mouthDimple_R", "mouthUpperUp_L", "mouthUpperUp_R",
    "mouthLowerDown_L", "mouthLowerDown_R", "mouthPress_L", "mouthPress_R",
    "mouthStretch_L", "mouthStretch_R", "tongueOut",
)
CHANNEL_COUNT = 52  # Hardware limit of the face mesh

# Action Unit intensity curve
DEFAULT_STRENGTHS = (0.2, 0.4, 0.6, 0.8, 1.0)
STRENGTH_LEVELS = 5
STRENGTH_MIN = -2.0
STRENGTH_MAX = 2.0
INTENSITY_LABELS = ("0", "A", "B", "C", "D", "E")  # FACS scoring, 0 = neutral

# Keyframes
ISI_VALUE = 1.0  # Every influence equal to this marks a blank (inter-stimulus) frame

# Scene objects addressed by animation tracks
FACE_MESH_NAME = "mesh_2"
MESH_PARTS = ("mesh_0", "mesh_1", "mesh_2", "mesh_3")
CLIP_NAME = "CustomAnimation"
RAW_CLIP_NAME = "morphAnimation"

# Thumbnail crop regions as (x, y, width, height) fractions of the frame
KEYFRAME_CROP = (0.39, 0.22, 0.23, 0.5)
SNAPSHOT_CROP = (0.2, 0.2, 0.6, 0.6)
BLANK_THUMBNAIL_SIZE = (64, 96)

# Network
FETCH_TIMEOUT = 10.0  # seconds
