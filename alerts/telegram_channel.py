"""Telegram alert channel; implements the AlertChannel protocol."""
import logging

import requests

logger = logging.getLogger("gwmonitor.alerts.telegram")


class TelegramChannel:
    """Deliver rendered alerts through a TelegramBot, one inline-keyboard row per action."""

    def __init__(self, bot):
        self.bot = bot

    def send(self, text, actions=None):
        keyboard = [[action] for action in actions] if actions else None
        try:
            data = self.bot.send_message(text, inline_keyboard=keyboard)
        except requests.RequestException as e:
            logger.warning(f"Telegram alert failed: {e}")
            return False
        return bool(data.get("ok"))
