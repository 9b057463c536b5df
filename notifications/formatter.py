"""
Message formatting for channel notifications.
"""

from __future__ import annotations

from config.constants import Defaults, Limits, MessageTemplates
from monitoring.models import Heartbeat, Monitor, MonitorStatus
from utils.helpers import StringHelper, TimeHelper


class MessageFormatter:
    """Builds the HTML message sent for an important (or resent) heartbeat."""

    def __init__(self, time_format: str = Defaults.DATETIME_FORMAT):
        self.time_format = time_format

    def format(self, monitor: Monitor, heartbeat: Heartbeat, resend: bool = False) -> str:
        status = MonitorStatus(heartbeat.status)
        values = {
            "emoji": MessageTemplates.STATUS_EMOJI.get(int(status), "❓"),
            "monitor_name": StringHelper.escape_html(monitor.name),
            "monitor_type": StringHelper.escape_html(monitor.type),
            "status": status.label.upper(),
            "msg": StringHelper.escape_html(heartbeat.msg or "-"),
            "time": f"{TimeHelper.format_datetime(heartbeat.time, self.time_format)} UTC",
            "down_count": heartbeat.down_count,
        }

        template = MessageTemplates.RESEND if resend else MessageTemplates.STATUS_CHANGE
        text = template.format(**values).strip()
        return StringHelper.truncate(text, Limits.MAX_MESSAGE_LENGTH)
