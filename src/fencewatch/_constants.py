"""Internal constants shared across the library."""

HISTORY_CAPACITY = 30
LOG_CAPACITY = 50

# Wall-clock format used for history points and log entries (24h).
CLOCK_FORMAT = "%H:%M:%S"

# ------------------------------------------------------------------
# Alarm thresholds / capture rate limit
# ------------------------------------------------------------------

CAPTURE_COOLDOWN_MS = 5000
SMOKE_ALARM_THRESHOLD = 300.0
CURRENT_ALARM_THRESHOLD = 5.0

# ------------------------------------------------------------------
# Log messages emitted by the transition detector
# ------------------------------------------------------------------

MSG_MOTION = "Motion Sensor Triggered (PIR)"
MSG_VIBRATION = "Fence Vibration Detected"
MSG_POLE_TAMPER = "Pole Tamper Switch Activation"
MSG_BOX_TAMPER = "Control Box Door Opened"
MSG_FENCE_ARMED = "Fence Power ARMED"
MSG_FENCE_DISARMED = "Fence Power DISARMED"
MSG_CONNECTED = "ESP32 Connection Established"
MSG_DISCONNECTED = "ESP32 Connection Lost"

# ------------------------------------------------------------------
# Evidence artifacts
# ------------------------------------------------------------------

ARTIFACT_PREFIX = "Image_Detected_"
ARTIFACT_EXTENSION = ".png"

OVERLAY_ORIGIN = (20, 40)
OVERLAY_LINE_HEIGHT = 30
