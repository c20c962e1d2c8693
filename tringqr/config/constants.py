"""Shared runtime constants for the TringQR capture core."""

DEFAULT_API_BASE_URL = "http://localhost:8080/v1"
DEFAULT_SCAN_HISTORY_PATH = "history"
DEFAULT_SCAN_APPEND_PATH = "history/append"
DEFAULT_CODES_HISTORY_PATH = "codes"
DEFAULT_CODES_CREATE_PATH = "codes/create"
DEFAULT_PLATFORM = "ios"
DEFAULT_SCAN_EVENT_CATEGORY = "qr_scan"

DEFAULT_PAYMENT_SCHEMES = ["upi"]
DEFAULT_WALLET_PAY_URI = "tez://upi/pay"
DEFAULT_WALLET_STORE_URL = "https://apps.apple.com/app/id1193357041"
DEFAULT_TRAFFIC_SOURCE_PARAM = "source"
DEFAULT_TRAFFIC_SOURCE_VALUE = "upi_qr"
DEFAULT_SEARCH_URL = "https://www.google.com/search?q="

DEFAULT_COOLDOWN_SECONDS = 2.0
DEFAULT_RESUME_DELAY_SECONDS = 2.0
MIN_ZOOM_FACTOR = 1.0

DEFAULT_KEYSTORE_DIR = "~/.local/share/tringqr/keystore"
DEVICE_ID_KEY = "device-id"

DEFAULT_TOKEN_ENDPOINT = "https://securetoken.googleapis.com/v1/token"
DEFAULT_NETWORK_WORKERS = 4
