import logging
import threading
from dataclasses import asdict

import av
import cv2
import mediapipe as mp
import streamlit as st
from streamlit_webrtc import webrtc_streamer, WebRtcMode, RTCConfiguration

# reuse your modules (when app lives in src/)
from settings import (
    ANGLE_UP_THRESHOLD, ANGLE_DOWN_THRESHOLD, MIN_CONFIDENCE,
    ARM_SIDE, SAMPLE_INTERVAL_SEC, LOG_LEVEL,
)
from rep_engine import InvalidConfiguration, RepConfig, SessionAggregator
from keypoints import SampleCadence, mediapipe_landmark_names, sample_from_mediapipe
from overlay import draw_arm, draw_hud, draw_keypoints
from session_logger import SessionRecorder, save_session

logging.basicConfig(level=LOG_LEVEL, format="[%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

mp_pose = mp.solutions.pose
LANDMARK_NAMES = mediapipe_landmark_names(mp_pose.PoseLandmark)


# ------------- Shared state (video callback runs in another thread) -------------
def _start_session(shared: dict, config: RepConfig):
    """Fresh aggregator + recorder for a config (caller holds the lock)."""
    session = SessionAggregator(config)
    recorder = SessionRecorder(config)
    session.subscribe(recorder)
    shared["config"] = config
    shared["session"] = session
    shared["recorder"] = recorder
    shared["sample"] = None
    shared["cadence"].reset()


# survives Streamlit reruns; one per server process
@st.cache_resource
def _shared_state():
    shared = {
        "lock": threading.Lock(),
        "cadence": SampleCadence(SAMPLE_INTERVAL_SEC),
        "_pose": None,
    }
    _start_session(shared, RepConfig.for_side(ARM_SIDE))
    return shared


_shared = _shared_state()


def _make_processor():
    """Lazy-init MediaPipe Pose (used inside callback)."""
    with _shared["lock"]:
        if _shared["_pose"] is None:
            _shared["_pose"] = mp_pose.Pose(
                static_image_mode=False,
                model_complexity=1,
                enable_segmentation=False,
                min_detection_confidence=0.6,
                min_tracking_confidence=0.6,
                smooth_landmarks=True,
            )
        return _shared["_pose"]


def video_frame_callback(frame: av.VideoFrame) -> av.VideoFrame:
    """Process each video frame; must not use st.session_state (runs in worker thread)."""
    pose = _make_processor()
    img = frame.to_ndarray(format="bgr24")
    img = cv2.flip(img, 1)
    h, w = img.shape[:2]

    with _shared["lock"]:
        session = _shared["session"]
        config = _shared["config"]
        due = _shared["cadence"].ready()

    if due:
        res = pose.process(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
        sample = sample_from_mediapipe(res.pose_landmarks, LANDMARK_NAMES, w, h, frame.time)
        session.process_sample(sample)
        with _shared["lock"]:
            _shared["sample"] = sample
    with _shared["lock"]:
        sample = _shared["sample"]

    if sample is not None:
        draw_keypoints(img, sample)
        draw_arm(img, sample, config)
    draw_hud(img, session.snapshot, show_debug=False)

    return av.VideoFrame.from_ndarray(img, format="bgr24")


# ------------- Sidebar (UI) -------------
st.sidebar.title("⚙️ Settings")

current = _shared["config"]
side = st.sidebar.radio("Arm", ["right", "left"], index=0 if "right" in current.elbow else 1)
angle_up = st.sidebar.slider("Up angle (°)", 120, 180, int(ANGLE_UP_THRESHOLD), 1)
angle_down = st.sidebar.slider("Down angle (°)", 30, 150, int(ANGLE_DOWN_THRESHOLD), 1)
min_conf = st.sidebar.slider("Min keypoint confidence", 0.0, 1.0, float(MIN_CONFIDENCE), 0.05)
st.sidebar.caption("Changing settings starts a new session.")

try:
    wanted = RepConfig.for_side(side, down_threshold=angle_down, up_threshold=angle_up,
                                min_confidence=min_conf)
except InvalidConfiguration as e:
    st.sidebar.error(f"Invalid settings, keeping the previous ones: {e}")
    wanted = current

reset_btn = st.sidebar.button("🔁 Reset session")

with _shared["lock"]:
    if wanted != _shared["config"] or reset_btn:
        _start_session(_shared, wanted)
        logger.info("New session: %s", wanted)
    snapshot = _shared["session"].snapshot

# ------------- Header -------------
st.title("Push-up Counter")

col1, col2, col3 = st.columns(3)
col1.metric("Reps", snapshot.rep_count)
col2.metric("Phase", snapshot.phase.value.upper())
col3.metric("Elbow", f"{int(snapshot.angle)}°" if snapshot.angle is not None else "--")

# Push-down progress bar
st.progress(snapshot.progress_percent / 100.0, text=f"Push-down progress: {round(snapshot.progress_percent)}%")

# ------------- WebRTC Video -------------
RTC_CONFIGURATION = RTCConfiguration(
    {"iceServers": [{"urls": ["stun:stun.l.google.com:19302"]}]}
)

try:
    webrtc_streamer(
        key="pushup",
        mode=WebRtcMode.SENDRECV,
        rtc_configuration=RTC_CONFIGURATION,
        media_stream_constraints={"video": True, "audio": False},
        video_frame_callback=video_frame_callback,
    )
except Exception as e:
    if "NoSessionError" in type(e).__name__ or "thread context" in str(e).lower():
        st.error(
            "WebRTC needs a proper Streamlit session. **Run the app from a terminal with:**\n\n"
            "`streamlit run src/streamlit_app.py`\n\n"
            "Then open http://localhost:8501 in your browser. Do not run the script with `python` or from an IDE run button."
        )
    else:
        raise


# ------------- Save session -------------
def finalize_and_save():
    with _shared["lock"]:
        summary = _shared["recorder"].summary()
    path = save_session(summary)
    st.success(f"Session summary saved to `{path}` ✅")
    st.json(asdict(summary))


st.button("💾 Save session now", on_click=finalize_and_save)
