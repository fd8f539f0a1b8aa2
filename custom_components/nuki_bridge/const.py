"""Constants for the Nuki Bridge integration."""

from homeassistant.const import Platform

DOMAIN = "nuki_bridge"

# Platforms
PLATFORMS = [
    Platform.BINARY_SENSOR,
    Platform.BUTTON,
    Platform.EVENT,
    Platform.LOCK,
    Platform.SENSOR,
    Platform.SWITCH,
]

# Config entry keys
CONF_CALLBACK_HOST = "callback_host"
CONF_CALLBACK_PORT = "callback_port"
CONF_REQUEST_INTERVAL = "request_interval"
CONF_RETRY_COUNT = "retry_count"
CONF_API_ENABLED = "api_enabled"
CONF_API_PORT = "api_port"
CONF_API_TOKEN = "api_token"
CONF_DEVICES = "devices"
CONF_DEVICE = "device"

# Per-device policy flags
CONF_UNLATCH_LOCK = "unlatch_lock"
CONF_UNLATCH_FROM_LOCKED_TO_UNLOCKED = "unlatch_from_locked_to_unlocked"
CONF_UNLATCH_FROM_UNLOCKED_TO_UNLOCKED = "unlatch_from_unlocked_to_unlocked"
CONF_LOCK_FROM_LOCKED_TO_LOCKED = "lock_from_locked_to_locked"
CONF_PREVENT_UNLATCH_IF_LOCKED = "unlatch_lock_prevent_unlatch_if_locked"
CONF_DOOR_SENSOR = "door_sensor_enabled"
CONF_LEAVE_OPEN = "leave_open"
CONF_RING_TO_OPEN = "ring_to_open_enabled"
CONF_CONTINUOUS_MODE = "continuous_mode_enabled"
CONF_DOORBELL = "doorbell_enabled"

SMART_LOCK_FLAGS = [
    CONF_UNLATCH_LOCK,
    CONF_UNLATCH_FROM_LOCKED_TO_UNLOCKED,
    CONF_UNLATCH_FROM_UNLOCKED_TO_UNLOCKED,
    CONF_LOCK_FROM_LOCKED_TO_LOCKED,
    CONF_PREVENT_UNLATCH_IF_LOCKED,
    CONF_DOOR_SENSOR,
]
OPENER_FLAGS = [
    CONF_LEAVE_OPEN,
    CONF_RING_TO_OPEN,
    CONF_CONTINUOUS_MODE,
    CONF_DOORBELL,
]

DEFAULT_BRIDGE_PORT = 8080
DEFAULT_CALLBACK_PORT = 40506
DEFAULT_API_PORT = 40011
DEFAULT_REQUEST_INTERVAL = 3.0  # seconds between two calls to the bridge
DEFAULT_RETRY_COUNT = 3
DEFAULT_SCAN_INTERVAL = 10  # minutes between two device list refreshes
REQUEST_TIMEOUT = 10  # seconds
MIN_RECHECK_DELAY = 0.1  # seconds, floor of the throttle re-check

# Bridge endpoints
ENDPOINT_LIST = "/list"
ENDPOINT_LOCK_ACTION = "/lockAction"
ENDPOINT_CALLBACK_LIST = "/callback/list"
ENDPOINT_CALLBACK_ADD = "/callback/add"
ENDPOINT_REBOOT = "/reboot"

# Device types reported by the bridge
DEVICE_TYPE_SMART_LOCK = 0
DEVICE_TYPE_OPENER = 2

# Smart lock states
LOCK_STATE_LOCKED = 1
LOCK_STATE_UNLOCKED = 3
LOCK_STATE_UNLATCHED = 5
LOCK_STATE_MOTOR_BLOCKED = 254

# Smart lock actions
LOCK_ACTION_UNLOCK = 1
LOCK_ACTION_LOCK = 2
LOCK_ACTION_UNLATCH = 3

# Opener states and modes
OPENER_STATE_ONLINE = 1
OPENER_STATE_RTO_ACTIVE = 3
OPENER_STATE_OPEN = 5
OPENER_STATE_OPENING = 7
OPENER_MODE_CONTINUOUS = 3

# Opener actions
OPENER_ACTION_ACTIVATE_RTO = 1
OPENER_ACTION_DEACTIVATE_RTO = 2
OPENER_ACTION_ELECTRIC_STRIKE = 3
OPENER_ACTION_ACTIVATE_CONTINUOUS = 4
OPENER_ACTION_DEACTIVATE_CONTINUOUS = 5

# Door sensor states
DOOR_SENSOR_CLOSED = 2
DOOR_SENSOR_OPEN = 3

# Switch features of the opener
FEATURE_RING_TO_OPEN = "ring_to_open"
FEATURE_CONTINUOUS_MODE = "continuous_mode"

SIGNAL_DOORBELL_RING = f"{DOMAIN}_doorbell_ring_{{}}"
EVENT_TYPE_RING = "ring"

ATTR_FAULT = "fault"
