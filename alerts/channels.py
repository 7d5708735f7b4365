"""Alert notification channels."""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from rich.console import Console

logger = logging.getLogger("gwmonitor.alerts.channels")


@runtime_checkable
class AlertChannel(Protocol):
    def send(self, text, actions=None) -> bool: ...


def mute_action(mute_key):
    """Inline "Mute" button routed to the mute menu for this key."""
    return {"text": "🔕 Mute", "callback_data": f"mute_menu:{mute_key}"}


class ConsoleChannel:
    """Print alerts to terminal with rich formatting."""

    SEVERITY_STYLES = {
        "CRITICAL": "bold white on red",
        "WARNING": "bold yellow",
        "INFO": "bold blue",
    }

    def __init__(self, console=None):
        self.console = console or Console()

    def send(self, text, actions=None):
        style = next((s for sev, s in self.SEVERITY_STYLES.items() if f"*{sev}*" in text), "")
        plain = text.replace("*", "")
        if style:
            self.console.print(plain, style=style)
        else:
            self.console.print(plain)
        return True


class FileChannel:
    """Append alerts to a JSON lines log file."""

    def __init__(self, log_path="data/alerts.jsonl"):
        self.log_path = log_path

    def send(self, text, actions=None):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "text": text,
            "actions": [a.get("callback_data") for a in actions or []],
        }
        try:
            Path(self.log_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
            return True
        except OSError as e:
            logger.warning(f"Failed to write alert to file: {e}")
            return False
