#!/usr/bin/env python3
"""
Motion Sample Simulator for the Step Tracker.

Publishes simulated accelerometer and geolocation samples to the Solace
broker, where SolaceMotionSensor picks them up for a running tracker.
Uses the Solace PubSub+ Python SDK for direct messaging.

Usage:
    python scripts/motion_simulator.py --scenario walk --steps 200
    python scripts/motion_simulator.py --scenario drive --duration 60
    python scripts/motion_simulator.py --scenario stroll --fixes 30 --meters 8
    python scripts/motion_simulator.py --once --magnitude 14.5
"""

import os
import sys
import json
import math
import time
import random
import argparse
from typing import List, Optional
from dotenv import load_dotenv

from solace.messaging.messaging_service import MessagingService
from solace.messaging.resources.topic import Topic
from solace.messaging.publisher.direct_message_publisher import PublishFailureListener
from solace.messaging.config.transport_security_strategy import TLS


# Load environment variables
load_dotenv()

GRAVITY = 9.81
METERS_PER_DEGREE_LAT = 6371000.0 * math.pi / 180

# Motion profiles (magnitudes in m/s^2)
MOTION_SPECS = {
    "walk": {
        "cadence_spm": 110,  # steps per minute
        "peak_range": (13.5, 14.5),
        "axis_noise": 0.3,
    },
    "drive": {
        "vibration_center": 13.0,  # above the step threshold, but smooth
        "vibration_amplitude": 0.5,
        "axis_noise": 0.2,
    },
    "stroll": {
        "start": (37.7749, -122.4194),
        "meters_per_fix": 10.0,
    },
}


class EventPublishFailureListener(PublishFailureListener):
    """Handler for publish failures."""

    def on_failed_publish(self, failed_publish_event):
        print(f"[ERROR] Failed to publish: {failed_publish_event}")


def create_messaging_service():
    """Create and connect to Solace broker messaging service."""
    broker_url = os.getenv("SOLACE_BROKER_URL", "ws://localhost:8008")
    vpn_name = os.getenv("SOLACE_BROKER_VPN", "default")
    username = os.getenv("SOLACE_BROKER_USERNAME", "default")
    password = os.getenv("SOLACE_BROKER_PASSWORD", "default")

    print(f"[INFO] Connecting to Solace broker: {broker_url}")
    print(f"[INFO] VPN: {vpn_name}, Username: {username}")

    broker_props = {
        "solace.messaging.transport.host": broker_url,
        "solace.messaging.service.vpn-name": vpn_name,
        "solace.messaging.authentication.scheme.basic.username": username,
        "solace.messaging.authentication.scheme.basic.password": password,
    }

    builder = MessagingService.builder().from_properties(broker_props)

    # For Solace Cloud (wss://), configure TLS
    if broker_url.startswith("wss://"):
        tls_strategy = TLS.create().without_certificate_validation()
        builder = builder.with_transport_security_strategy(tls_strategy)
        print("[INFO] TLS enabled (development mode)")

    messaging_service = builder.build()
    messaging_service.connect()
    print("[INFO] Connected to Solace broker successfully!")

    return messaging_service


def acceleration_sample(x: float, y: float, z: float, timestamp: float) -> dict:
    return {"kind": "acceleration", "x": x, "y": y, "z": z, "timestamp": timestamp}


def position_sample(latitude: float, longitude: float, timestamp: float) -> dict:
    return {"kind": "position", "latitude": latitude, "longitude": longitude, "timestamp": timestamp}


def generate_walk(
    steps: int,
    sample_rate: float = 20.0,
    cadence_spm: Optional[int] = None,
    start: float = 0.0,
    rng: Optional[random.Random] = None,
) -> List[dict]:
    """
    Accelerometer trace of a walk.

    Each step is one sample window at resting gravity with a single peak in
    the middle, so every peak rises well above both the threshold and the
    previous sample.
    """
    rng = rng or random.Random()
    specs = MOTION_SPECS["walk"]
    cadence = cadence_spm or specs["cadence_spm"]
    noise = specs["axis_noise"]

    dt = 1.0 / sample_rate
    per_step = max(int(round((60.0 / cadence) * sample_rate)), 2)

    samples = []
    t = start
    for _ in range(steps):
        for i in range(per_step):
            if i == per_step // 2:
                z = rng.uniform(*specs["peak_range"])
            else:
                z = GRAVITY
            samples.append(
                acceleration_sample(rng.uniform(-noise, noise), rng.uniform(-noise, noise), z, t)
            )
            t += dt
    return samples


def generate_drive(
    duration: float,
    sample_rate: float = 20.0,
    start: float = 0.0,
    rng: Optional[random.Random] = None,
) -> List[dict]:
    """
    Accelerometer trace of a car ride: sustained vibration above the step
    threshold with small sample-to-sample changes. Strict detection counts
    no steps here.
    """
    rng = rng or random.Random()
    specs = MOTION_SPECS["drive"]
    noise = specs["axis_noise"]

    dt = 1.0 / sample_rate
    samples = []
    for i in range(int(duration * sample_rate)):
        z = (
            specs["vibration_center"]
            + specs["vibration_amplitude"] * math.sin(i * 0.3)
            + rng.uniform(-noise, noise)
        )
        samples.append(
            acceleration_sample(rng.uniform(-noise, noise), rng.uniform(-noise, noise), z, start + i * dt)
        )
    return samples


def generate_stroll(
    fixes: int,
    meters_per_fix: Optional[float] = None,
    interval: float = 5.0,
    start_position: Optional[tuple] = None,
    start: float = 0.0,
) -> List[dict]:
    """Geolocation fixes heading due north, evenly spaced."""
    specs = MOTION_SPECS["stroll"]
    meters = specs["meters_per_fix"] if meters_per_fix is None else meters_per_fix
    lat, lon = start_position or specs["start"]

    samples = []
    for i in range(fixes):
        samples.append(position_sample(lat + (i * meters) / METERS_PER_DEGREE_LAT, lon, start + i * interval))
    return samples


def publish_sample(publisher, sample: dict, topic_prefix: str = "steps/events", device_id: str = "sim-phone"):
    """Publish a motion sample to the device's topic."""
    topic_string = f"{topic_prefix}/motion/{device_id}/sample"
    topic = Topic.of(topic_string)

    message_body = json.dumps(sample)
    publisher.publish(destination=topic, message=message_body)

    return topic_string


def replay(publisher, samples: List[dict], topic_prefix: str, device_id: str, realtime: bool = True):
    """Publish samples, pacing them by their timestamps."""
    previous = None
    for sample in samples:
        if realtime and previous is not None:
            time.sleep(max(sample["timestamp"] - previous, 0))
        previous = sample["timestamp"]
        sample = dict(sample, timestamp=time.time() if realtime else sample["timestamp"])
        publish_sample(publisher, sample, topic_prefix, device_id)
    print(f"[PUBLISH] {len(samples)} samples to {topic_prefix}/motion/{device_id}/sample")


def main():
    parser = argparse.ArgumentParser(
        description="Motion Sample Simulator for the Step Tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Walk 200 steps at the default cadence
  python scripts/motion_simulator.py --scenario walk --steps 200

  # A one-minute car ride (no steps should be counted)
  python scripts/motion_simulator.py --scenario drive --duration 60

  # 30 geolocation fixes, 8 meters apart
  python scripts/motion_simulator.py --scenario stroll --fixes 30 --meters 8

  # Single accelerometer spike
  python scripts/motion_simulator.py --once --magnitude 14.5
        """,
    )

    parser.add_argument(
        "--scenario",
        choices=["walk", "drive", "stroll"],
        default="walk",
        help="Scenario to run (default: walk)",
    )
    parser.add_argument("--steps", type=int, default=100, help="Steps for walk scenario (default: 100)")
    parser.add_argument("--cadence", type=int, help="Steps per minute for walk scenario")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Duration in seconds for drive scenario (default: 30)",
    )
    parser.add_argument("--fixes", type=int, default=20, help="Fixes for stroll scenario (default: 20)")
    parser.add_argument("--meters", type=float, help="Meters between stroll fixes (default: 10)")
    parser.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Seconds between stroll fixes (default: 5)",
    )
    parser.add_argument(
        "--sample-rate",
        type=float,
        default=20.0,
        help="Accelerometer samples per second (default: 20)",
    )
    parser.add_argument("--once", action="store_true", help="Send a single sample and exit")
    parser.add_argument("--magnitude", type=float, help="Acceleration magnitude for --once")
    parser.add_argument("--device-id", default="sim-phone", help="Device id in the topic (default: sim-phone)")
    parser.add_argument(
        "--topic-prefix",
        default="steps/events",
        help="Topic prefix for samples (default: steps/events)",
    )
    parser.add_argument(
        "--no-realtime",
        action="store_true",
        help="Publish as fast as possible with the generated timestamps",
    )

    args = parser.parse_args()

    if args.once and args.magnitude is None:
        parser.error("--once requires --magnitude")

    print("=" * 60)
    print("Motion Sample Simulator")
    print("=" * 60)

    messaging_service = None
    publisher = None

    try:
        messaging_service = create_messaging_service()

        publisher = (
            messaging_service.create_direct_message_publisher_builder()
            .on_back_pressure_reject(buffer_capacity=100)
            .build()
        )

        publisher.set_publish_failure_listener(EventPublishFailureListener())
        publisher.start()

        print("[INFO] Publisher started")

        start = time.time()
        realtime = not args.no_realtime

        if args.once:
            sample = acceleration_sample(0.0, 0.0, args.magnitude, start)
            topic = publish_sample(publisher, sample, args.topic_prefix, args.device_id)
            print(f"[PUBLISH] {topic}: {json.dumps(sample)}")
        elif args.scenario == "walk":
            print(f"\n[SCENARIO] Walking {args.steps} steps")
            samples = generate_walk(args.steps, args.sample_rate, args.cadence, start)
            replay(publisher, samples, args.topic_prefix, args.device_id, realtime)
        elif args.scenario == "drive":
            print(f"\n[SCENARIO] Driving for {args.duration}s")
            samples = generate_drive(args.duration, args.sample_rate, start)
            replay(publisher, samples, args.topic_prefix, args.device_id, realtime)
        elif args.scenario == "stroll":
            print(f"\n[SCENARIO] Strolling over {args.fixes} fixes")
            samples = generate_stroll(args.fixes, args.meters, args.interval, start=start)
            replay(publisher, samples, args.topic_prefix, args.device_id, realtime)

        print("\n[INFO] Simulation complete")

    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
    except Exception as e:
        print(f"\n[ERROR] {e}")
        sys.exit(1)
    finally:
        if publisher:
            publisher.terminate()
            print("[INFO] Publisher terminated")
        if messaging_service:
            messaging_service.disconnect()
            print("[INFO] Disconnected from Solace broker")


if __name__ == "__main__":
    main()
