"""Internal constants shared across the library."""

API_BASE_URL = "https://api.uber.com"
SANDBOX_BASE_URL = "https://sandbox-api.uber.com"
API_VERSION = "v1.2"
USER_AGENT = "uberpane/1.0"

#: Side length of the pane in pixels.
PANE_SIZE = 16

# Label colours (RGB)
COLOR_BLACK = (0, 0, 0)
COLOR_WAIT = (253, 151, 32)
COLOR_SURGE = (69, 175, 249)

# Label rows
WAIT_LABEL_TOP = 2
SURGE_LABEL_TOP = 9

# ------------------------------------------------------------------
# Timer names
# ------------------------------------------------------------------

TIMER_INTRO = "intro"
TIMER_VISIBILITY = "visibility"
TIMER_STALE = "stale"
TIMER_UPDATE = "update"
TIMER_CONFIRM = "confirm"
TIMER_DISMISS = "dismiss"
