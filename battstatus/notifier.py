"""
Desktop notifications for advisory signals.
"""

import logging
import platform
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional

from battstatus.reporter import Decision, Signal, SignalKind

logger = logging.getLogger("BattStatus.Notifier")


class NotificationType(Enum):
    """Types of notifications that can be sent."""
    BATTERY_REVIVAL = "battery_revival"
    RECENTLY_RESUMED = "recently_resumed"
    BATTERY_SAVER = "battery_saver"


# Battery saver toggles are always delivered
COOLDOWN_TYPES = frozenset({NotificationType.BATTERY_REVIVAL, NotificationType.RECENTLY_RESUMED})

SIGNAL_NOTIFICATIONS = {
    SignalKind.REVIVAL_WARNING: NotificationType.BATTERY_REVIVAL,
    SignalKind.RESUME_WARNING: NotificationType.RECENTLY_RESUMED,
    SignalKind.BATTERY_SAVER_CHANGED: NotificationType.BATTERY_SAVER,
}


class PowerNotifier:
    """Sends desktop notifications for engine signals, with a per-type cooldown."""

    def __init__(self, config):
        """
        Initialize the power notifier.

        Args:
            config: ConfigManager instance
        """
        self.config = config
        self.last_notifications: Dict[NotificationType, datetime] = {}
        self._notification_module = None
        self._initialize_notification_system()

    def _initialize_notification_system(self):
        """Initialize plyer, importing the platform back-end directly if the facade fails."""
        try:
            from plyer import notification
            self._notification_module = notification
            logger.debug("Initialized notification system using plyer")
        except (ImportError, NotImplementedError) as e:
            logger.warning(f"Failed to import plyer normally: {e}")

            # Frozen builds may miss the facade's lazy platform import
            try:
                system = platform.system().lower()
                if system == 'windows':
                    from plyer.platforms.win import notification
                elif system == 'darwin':
                    from plyer.platforms.macosx import notification
                elif system == 'linux':
                    from plyer.platforms.linux import notification
                else:
                    logger.error(f"Unsupported platform: {system}")
                    return

                self._notification_module = notification
                logger.debug(f"Initialized notification system for {system}")
            except (ImportError, NotImplementedError) as e:
                logger.error(f"Failed to initialize notification system: {e}")

    def should_notify(self, notification_type: NotificationType, now: Optional[datetime] = None) -> bool:
        """
        Check if the cooldown for this notification type has passed.

        Args:
            notification_type: The type of notification to check
            now: Current time, datetime.now() if None

        Returns:
            True if notification should be sent, False otherwise
        """
        if notification_type not in self.last_notifications:
            return True

        now = now or datetime.now()
        cooldown = timedelta(minutes=self.config.get("notification_cooldown_minutes", 15))
        elapsed = now - self.last_notifications[notification_type]

        if elapsed < cooldown:
            logger.debug(
                f"Notification cooldown active for {notification_type.value}. "
                f"Time remaining: {(cooldown - elapsed).total_seconds():.0f}s"
            )
            return False

        return True

    def _send_notification(
        self,
        title: str,
        message: str,
        notification_type: NotificationType
    ) -> bool:
        """
        Send a notification and update the last notification time.

        Args:
            title: Notification title (max 50 characters)
            message: Notification message (max 200 characters)
            notification_type: Type of notification being sent

        Returns:
            True if notification was sent successfully, False otherwise
        """
        if not self._notification_module:
            logger.warning("Notification system not initialized, cannot send notification")
            return False

        if notification_type in COOLDOWN_TYPES and not self.should_notify(notification_type):
            return False

        try:
            self._notification_module.notify(
                title=title[:50],
                message=message[:200],
                app_name='battstatus',
                timeout=10
            )
        except NotImplementedError:
            logger.error(
                "Notifications not implemented for this platform. "
                "Please install required system dependencies."
            )
            return False
        except Exception as e:
            logger.error(f"Failed to send notification: {e}", exc_info=True)
            return False

        self.last_notifications[notification_type] = datetime.now()
        logger.debug(f"Sent {notification_type.value} notification: {title}")
        return True

    def notify_signal(self, signal: Signal, decision: Optional[Decision] = None) -> bool:
        """
        Send the notification for an engine signal.

        Args:
            signal: Signal raised by the engine
            decision: Decision made on the same tick, for the charge percent

        Returns:
            True if notification was sent successfully, False otherwise
        """
        notification_type = SIGNAL_NOTIFICATIONS[signal.kind]

        percent = decision.percent if decision is not None else None
        at_percent = f" Battery at {percent}%." if percent is not None else ""

        if signal.kind == SignalKind.REVIVAL_WARNING:
            title = "Battery Revival Detected"
            message = (
                "The battery is rapidly switching between charging and not charging. "
                f"Charge state changes are hidden until it settles.{at_percent}"
            )
        elif signal.kind == SignalKind.RESUME_WARNING:
            title = "Recently Resumed"
            message = (
                "Remaining battery time is unreliable until the discharge rate "
                f"is measured again.{at_percent}"
            )
        else:
            state = "on" if signal.battery_saver else "off"
            title = f"Battery Saver {state.capitalize()}"
            message = f"Battery saver is {state}.{at_percent}"

        return self._send_notification(title, message, notification_type)
