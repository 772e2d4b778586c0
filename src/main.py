# Push-up Counter
# - Elbow angle from MediaPipe Pose, sampled at a fixed cadence
# - Up/down hysteresis counts one rep per down -> up
# - Says "Down" / "Up" / count, beeps on rep
# - Saves session summary (JSON + CSV)

import argparse
import logging
import time

import cv2
import mediapipe as mp

from settings import (
    ANGLE_UP_THRESHOLD, ANGLE_DOWN_THRESHOLD, MIN_CONFIDENCE,
    ARM_SIDE, SAMPLE_INTERVAL_SEC, CAM_INDEX, DRAW_SKELETON,
    SPEAK, BEEP_ON_REP, LOG_LEVEL,
)
from rep_engine import InvalidConfiguration, RepConfig, SessionAggregator
from keypoints import SampleCadence, mediapipe_landmark_names, sample_from_mediapipe
from narrator import Narrator
from overlay import draw_arm, draw_hud, draw_keypoints
from session_logger import SessionRecorder, save_session

logger = logging.getLogger(__name__)

mp_pose = mp.solutions.pose
LANDMARK_NAMES = mediapipe_landmark_names(mp_pose.PoseLandmark)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Count push-ups from the webcam")
    ap.add_argument("--camera", type=int, default=CAM_INDEX, help="webcam index")
    ap.add_argument("--side", choices=["left", "right"], default=ARM_SIDE, help="arm to track")
    ap.add_argument("--down", type=float, default=ANGLE_DOWN_THRESHOLD, help="down threshold (deg)")
    ap.add_argument("--up", type=float, default=ANGLE_UP_THRESHOLD, help="up threshold (deg)")
    ap.add_argument("--min-confidence", type=float, default=MIN_CONFIDENCE)
    ap.add_argument("--no-speech", action="store_true", help="disable spoken feedback")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL, format="[%(levelname)s] %(message)s")

    # fail fast on bad thresholds, before the camera opens
    try:
        config = RepConfig.for_side(
            args.side,
            down_threshold=args.down,
            up_threshold=args.up,
            min_confidence=args.min_confidence,
        )
    except InvalidConfiguration as e:
        raise SystemExit(f"Invalid configuration: {e}")
    logger.info("Tracking %s (down < %s deg, up > %s deg)",
                "/".join(config.joints), config.down_threshold, config.up_threshold)

    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        raise SystemExit(f"Could not access webcam (index {args.camera}).")

    pose = mp_pose.Pose(
        static_image_mode=False,
        model_complexity=1,
        enable_segmentation=False,
        min_detection_confidence=0.6,
        min_tracking_confidence=0.6,
        smooth_landmarks=True,
    )

    session = SessionAggregator(config)
    recorder = SessionRecorder(config)
    narrator = Narrator(speak=SPEAK and not args.no_speech, beep_on_rep=BEEP_ON_REP).start()
    session.subscribe(recorder)
    session.subscribe(narrator)

    cadence = SampleCadence(SAMPLE_INTERVAL_SEC)
    sample = None
    show_debug = True

    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                break
            frame = cv2.flip(frame, 1)
            h, w = frame.shape[:2]

            if cadence.ready():
                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                res = pose.process(rgb)
                sample = sample_from_mediapipe(res.pose_landmarks, LANDMARK_NAMES, w, h, time.time())
                session.process_sample(sample)

            if DRAW_SKELETON and sample is not None:
                draw_keypoints(frame, sample)
                draw_arm(frame, sample, config)
            draw_hud(frame, session.snapshot, show_debug)

            cv2.imshow("Push-up Counter", frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            elif key == ord('r'):
                session.reset()
                recorder.reset()
                cadence.reset()
                sample = None
            elif key == ord('s'):
                show_debug = not show_debug
    finally:
        cap.release(); cv2.destroyAllWindows()
        pose.close()
        narrator.stop()

    summary = recorder.summary()
    path = save_session(summary)
    print(f"\nSession summary saved to {path}")
    print(summary)


if __name__ == "__main__":
    main()
