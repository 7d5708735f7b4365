"""Utility modules for Gateway Monitor."""
from utils.logger import setup_logging
from utils.formatters import format_pct, format_number, format_duration, format_timestamp, parse_duration, time_ago
from utils.http_client import HTTPClient, APIError
