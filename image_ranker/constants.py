# Highlight color used for mismatched pixels in rendered diff images (R, G, B)
DEFAULT_HIGHLIGHT_COLOR = (255, 0, 255)

# Swatches offered in the diff settings panel
HIGHLIGHT_SWATCHES = [
    (255, 0, 255),   # magenta
    (255, 0, 0),     # red
    (0, 255, 0),     # green
    (0, 128, 255),   # blue
    (255, 255, 0),   # yellow
]

# Alpha multiplier for unchanged pixels in the diff image
DIFF_TRANSPARENCY = 0.3

# Edge labels fade out after this delay unless a reveal is active
LABEL_HIDE_DELAY_MS = 2000

# Initial wipe divider position (percent of width)
DEFAULT_WIPE_PERCENT = 50.0

# Worker threads for pixel comparison jobs
DEFAULT_MAX_WORKERS = 4

# Brightness weights (R, G, B)
LUMA_WEIGHTS = (0.3, 0.59, 0.11)

# Per-mode tolerances. Keys match SensitivityMode.key.
TOLERANCES = {
    "all": {
        "channel": 16, "alpha": 16, "min_brightness": 16, "max_brightness": 240,
    },
    "colors": {
        "channel": 16, "alpha": 16, "min_brightness": 16, "max_brightness": 240,
    },
    "aa": {
        "channel": 32, "alpha": 32, "min_brightness": 64, "max_brightness": 96,
    },
}

# Neighbours with a hue delta above this count as a different hue (hue in 0..1)
AA_HUE_THRESHOLD = 0.3

# Window defaults
DEFAULT_WINDOW_WIDTH = 1280
DEFAULT_WINDOW_HEIGHT = 820

# Image file filter for open dialogs
IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.webp *.tif *.tiff);;All Files (*.*)"


# Dark theme stylesheet
DARK_STYLE = """
QMainWindow, QWidget { background-color: #2b2b2b; }
QStatusBar { background-color: #3c3f41; color: #dcdcdc; }
QGroupBox { border: 1px solid #555; border-radius: 4px; margin-top: 8px;
            padding-top: 8px; color: #dcdcdc; }
QGroupBox::title { subcontrol-origin: margin; left: 10px; padding: 0 3px; }
QLabel { color: #dcdcdc; }
QRadioButton { color: #dcdcdc; }
QPushButton { background-color: #4b6eaf; color: white; border: none;
    border-radius: 3px; padding: 4px 12px; }
QPushButton:hover { background-color: #5a7fbf; }
QPushButton:pressed { background-color: #3d5a8f; }
QPushButton:checked { background-color: #2f4f86; }
QListWidget { background-color: #2b2b2b; color: #dcdcdc; border: 1px solid #555; }
QListWidget::item:selected { background-color: #4b6eaf; color: white; }
QScrollBar:vertical { background: #2b2b2b; width: 12px; }
QScrollBar::handle:vertical { background: #555; border-radius: 6px; }
"""
