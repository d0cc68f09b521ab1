"""
  File with all constants in project
"""


class DeviceKind:
    """EVOK device kinds published by the snapshot poll"""
    TEMP = "temp"
    RELAY = "relay"
    AI = "ai"
    INPUT = "input"
    AO = "ao"


# Only these kinds are taken from the /rest/all snapshot, everything else is ignored
POLL_DEVICE_KINDS = frozenset(
    (DeviceKind.TEMP, DeviceKind.RELAY, DeviceKind.AI, DeviceKind.INPUT, DeviceKind.AO)
)

# MQTT topics
TOPIC_PREFIX = "evok"
DEFAULT_TOPIC_TEMPLATE = TOPIC_PREFIX + "/{device}/{circuit}/value"
SET_TOPIC_FILTER = TOPIC_PREFIX + "/+/+/set"
MQTT_QOS = 0
MQTT_RETAIN = True
MQTT_KEEPALIVE = 2

# EVOK endpoints (relative to host:port)
EVOK_WS_PATH = "/ws"
EVOK_REST_ALL_PATH = "/rest/all"
EVOK_SET_COMMAND = "set"

# Process defaults (command line)
DEFAULT_BROKER_URL = "tcp://127.0.0.1:1883"
DEFAULT_CLIENT_ID = "evok"
DEFAULT_CONFIG_PATH = "/config.yaml"
DEFAULT_EVOK_ADDRESS = "127.0.0.1:8080"

# Config defaults
DEFAULT_POLL_INTERVAL = 30

# Timeouts
DEFAULT_TIMEOUT = 5.0
SHUTDOWN_DRAIN_TIMEOUT = 5.0
RECONNECT_DELAY_INITIAL = 2
RECONNECT_DELAY_MAX = 60

# Bounded queue in front of each single-writer sink
SINK_QUEUE_SIZE = 1000

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
