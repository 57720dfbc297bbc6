"""Twilio SMS alert for new work."""

import logging

from .config import TwilioConfig
from .notifier import AlertSink

logger = logging.getLogger(__name__)

try:
    from twilio.rest import Client
    TWILIO_AVAILABLE = True
except ImportError:
    TWILIO_AVAILABLE = False
    logger.warning("Twilio library not installed. Install with: pip install twilio")

DEFAULT_MESSAGE = "New PRs are waiting in the review queue."


class SmsAlertSink(AlertSink):
    """Sends a short SMS each time the notifier fires."""

    def __init__(self, config: TwilioConfig, message: str = DEFAULT_MESSAGE):
        """
        Initialize the Twilio client.

        Args:
            config: Twilio configuration.
            message: Text sent with every alert.

        Raises:
            ImportError: If Twilio library is not installed.
        """
        if not TWILIO_AVAILABLE:
            raise ImportError(
                "Twilio library not installed. Install with: pip install twilio"
            )

        self.config = config
        self.message = message
        self.client = Client(config.account_sid, config.auth_token)

    def alert(self) -> None:
        """Send the SMS. Failures are logged here and not raised."""
        try:
            message_obj = self.client.messages.create(
                body=self.message,
                from_=self.config.from_number,
                to=self.config.to_number
            )
            logger.info(f"SMS alert sent. SID: {message_obj.sid}")
        except Exception as e:
            error_str = str(e)
            if "20003" in error_str or "Authenticate" in error_str or "401" in error_str:
                logger.error(
                    "Twilio authentication failed (Error 20003). "
                    "Check TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN. "
                    f"Current Account SID (first 10 chars): {self.config.account_sid[:10]}..."
                )
            else:
                logger.error(f"Failed to send SMS alert: {e}")
