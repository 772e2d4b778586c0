# All config in one place

# Elbow angle thresholds (degrees); the gap between them is the hysteresis band
ANGLE_UP_THRESHOLD = 160      # "UP" (arm extended)
ANGLE_DOWN_THRESHOLD = 90     # "DOWN" (arm bent)

# Keypoints
MIN_CONFIDENCE = 0.5          # landmarks below this are ignored
ARM_SIDE = "right"            # arm used for the elbow angle ("left"/"right")
SAMPLE_INTERVAL_SEC = 0.2     # pose sampling cadence (0 = every frame)

# Video
CAM_INDEX = 0                 # webcam index
DRAW_SKELETON = True          # draw arm + keypoints
KEYPOINT_DRAW_CONFIDENCE = 0.5

# Audio
SPEAK = True                  # say "Down", "Up" and the count
BEEP_ON_REP = True            # beep on each rep

# Logging
LOG_LEVEL = "INFO"
