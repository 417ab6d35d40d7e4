"""
Solace Motion Sensor.

A MotionSensor fed by motion samples published on the Solace event mesh
(see scripts/motion_simulator.py). Each message is one sample; broker
callbacks arrive on the messaging thread and are handed to the asyncio loop
that registered the listener.
"""

import asyncio
import json
import logging
import os
from typing import Optional

from solace.messaging.config.transport_security_strategy import TLS
from solace.messaging.messaging_service import MessagingService
from solace.messaging.receiver.message_receiver import InboundMessage, MessageHandler
from solace.messaging.resources.topic_subscription import TopicSubscription

from .exceptions import SensorUnavailable
from .motion_sampler import MotionSensor, SampleListener, sample_from_payload

logger = logging.getLogger(__name__)


def motion_topic_pattern(topic_prefix: str, device_id: str = "*") -> str:
    return f"{topic_prefix}/motion/{device_id}/sample"


class MotionMessageHandler(MessageHandler):
    """Parses inbound motion messages and forwards samples to the loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, listener: SampleListener):
        self.loop = loop
        self.listener = listener
        self.message_count = 0

    def on_message(self, message: InboundMessage):
        try:
            payload = json.loads(message.get_payload_as_string())
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"[SOLACE] Failed to parse motion sample: {e}")
            return

        sample = sample_from_payload(payload)
        if sample is None:
            logger.debug(f"[SOLACE] Dropping unrecognised payload on {message.get_destination_name()}")
            return

        self.message_count += 1
        self.loop.call_soon_threadsafe(self.listener, sample)


class SolaceMotionSensor(MotionSensor):
    """
    Motion samples from a Solace direct-message subscription.

    Connects when the first listener is added and disconnects when it is
    removed. Only one listener is supported at a time.
    """

    def __init__(
        self,
        topic_prefix: str = "steps/events",
        device_id: str = "*",
        broker_url: Optional[str] = None,
    ):
        self.topic_pattern = motion_topic_pattern(topic_prefix, device_id)
        self.broker_url = broker_url or os.getenv("SOLACE_BROKER_URL", "ws://localhost:8008")
        self.messaging_service: Optional[MessagingService] = None
        self.receiver = None
        self._listener: Optional[SampleListener] = None
        self._handler: Optional[MotionMessageHandler] = None

    def _connect(self) -> MessagingService:
        broker_props = {
            "solace.messaging.transport.host": self.broker_url,
            "solace.messaging.service.vpn-name": os.getenv("SOLACE_BROKER_VPN", "default"),
            "solace.messaging.authentication.scheme.basic.username": os.getenv(
                "SOLACE_BROKER_USERNAME", "default"
            ),
            "solace.messaging.authentication.scheme.basic.password": os.getenv(
                "SOLACE_BROKER_PASSWORD", "default"
            ),
        }

        builder = MessagingService.builder().from_properties(broker_props)

        # For Solace Cloud (wss://), configure TLS
        if self.broker_url.startswith("wss://"):
            tls_strategy = TLS.create().without_certificate_validation()
            builder = builder.with_transport_security_strategy(tls_strategy)
            logger.info("[SOLACE] TLS enabled (development mode)")

        service = builder.build()
        service.connect()
        return service

    def add_listener(self, listener: SampleListener) -> None:
        if self._listener is not None:
            if self._listener is listener:
                return
            raise RuntimeError("SolaceMotionSensor already has a listener")

        loop = asyncio.get_running_loop()
        logger.info(f"[SOLACE] Connecting to {self.broker_url}, subscribing to {self.topic_pattern}")

        try:
            self.messaging_service = self._connect()
            self.receiver = (
                self.messaging_service.create_direct_message_receiver_builder()
                .with_subscriptions([TopicSubscription.of(self.topic_pattern)])
                .build()
            )
            self.receiver.start()
            self._handler = MotionMessageHandler(loop, listener)
            self.receiver.receive_async(self._handler)
        except Exception as e:
            logger.error(f"[SOLACE] Failed to subscribe to motion samples: {e}")
            self._disconnect()
            raise SensorUnavailable(
                f"Motion broker unavailable: {e}", details={"broker_url": self.broker_url}
            ) from e

        self._listener = listener

    def remove_listener(self, listener: SampleListener) -> None:
        if self._listener is not listener:
            return
        self._disconnect()
        self._listener = None

    def _disconnect(self) -> None:
        try:
            if self.receiver:
                self.receiver.terminate()
            if self.messaging_service:
                self.messaging_service.disconnect()
        except Exception as e:
            logger.error(f"[SOLACE] Error while disconnecting: {e}")
        finally:
            count = self._handler.message_count if self._handler else 0
            self.receiver = None
            self.messaging_service = None
            self._handler = None
            logger.info(f"[SOLACE] Disconnected after {count} motion samples")
