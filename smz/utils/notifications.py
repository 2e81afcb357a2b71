import logging
from datetime import datetime, timezone
from typing import Iterable

import requests

from smz.models import Alert, AlertType

logger = logging.getLogger("SMZ.Notifications")


class TelegramNotifier:
    def __init__(self, token: str, chat_id: str, enabled: bool = True):
        self.token = token
        self.chat_id = chat_id
        self.enabled = enabled
        self.base_url = f"https://api.telegram.org/bot{self.token}"

    def send_message(self, message: str) -> bool:
        """
        Sends a message to the configured Telegram chat. Returns True when delivered.
        """
        if not self.enabled or not self.token or not self.chat_id:
            logger.debug("Telegram notifications disabled or missing credentials.")
            return False

        url = f"{self.base_url}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "Markdown"
        }

        try:
            response = requests.post(url, json=payload, timeout=10)
        except requests.RequestException as e:
            logger.error(f"Error sending Telegram message: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Failed to send Telegram message: {response.text}")
            return False
        logger.info("Telegram notification sent.")
        return True

    def send_alerts(self, symbol: str, alerts: Iterable[Alert]) -> int:
        sent = 0
        for alert in alerts:
            if self.send_message(format_alert(symbol, alert)):
                sent += 1
        return sent


def format_alert(symbol: str, alert: Alert) -> str:
    when = ""
    if alert.time is not None:
        when = datetime.fromtimestamp(alert.time, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    if alert.type == AlertType.RETEST_REJECTION:
        score = f"{alert.score:.2f}" if alert.score is not None else "n/a"
        return (f"🎯 **Retest Rejection** {symbol} [{alert.timeframe}]\n"
                f"Zone: `{alert.ref_id}`\n"
                f"Price: {alert.price:.5f} | Score: {score}\n"
                f"{when}")
    return (f"🕳 **Gap Filled** {symbol} [{alert.timeframe}]\n"
            f"Gap: `{alert.ref_id}`\n"
            f"Price: {alert.price:.5f}\n"
            f"{when}")
