"""SQLite retention store for metric samples, alert history, config blobs and snapshots."""
import json
import sqlite3
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from models.alerts import AlertRecord
from models.metrics import MetricSample, DailyAggregate
from utils.constants import now_ms

logger = logging.getLogger("gwmonitor.db")

SAMPLE_COLUMNS = [
    "timestamp", "cpu_percent", "memory_percent", "disk_percent", "uptime_seconds",
    "http_requests_total", "arns_resolutions", "arns_errors", "graphql_requests_total",
    "arns_cache_hit_rate", "average_response_time_ms", "last_height_imported",
    "current_network_height", "height_difference", "observer_selected",
    "observer_report_submitted", "observer_weight",
]

# Columns added to the alerts table after the first schema version
ALERT_MIGRATIONS = {
    "severity": "TEXT NOT NULL DEFAULT 'info'",
    "category": "TEXT",
    "title": "TEXT NOT NULL DEFAULT ''",
}


class Database:
    def __init__(self, db_path="data/gateway_metrics.db"):
        self.db_path = db_path
        self.conn = None

    def connect(self):
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        self._migrate_alerts()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS metrics (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                cpu_percent REAL,
                memory_percent REAL,
                disk_percent REAL,
                uptime_seconds INTEGER,
                http_requests_total INTEGER,
                arns_resolutions INTEGER,
                arns_errors INTEGER,
                graphql_requests_total INTEGER,
                arns_cache_hit_rate REAL,
                average_response_time_ms REAL,
                last_height_imported INTEGER,
                current_network_height INTEGER,
                height_difference INTEGER,
                observer_selected INTEGER,
                observer_report_submitted INTEGER,
                observer_weight REAL
            );

            CREATE INDEX IF NOT EXISTS idx_metrics_timestamp
                ON metrics(timestamp);

            CREATE TABLE IF NOT EXISTS alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_alerts_timestamp
                ON alerts(timestamp);

            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS network_snapshots (
                kind TEXT NOT NULL,
                key TEXT NOT NULL,
                data TEXT NOT NULL,
                updated_at INTEGER NOT NULL,
                PRIMARY KEY (kind, key)
            );
        """)
        self.conn.commit()

    def _migrate_alerts(self):
        existing = {r["name"] for r in self.conn.execute("PRAGMA table_info(alerts)").fetchall()}
        for column, ddl in ALERT_MIGRATIONS.items():
            if column not in existing:
                self.conn.execute(f"ALTER TABLE alerts ADD COLUMN {column} {ddl}")
                logger.info(f"Migrated alerts table: added column {column}")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_alerts_category ON alerts(category)")
        self.conn.commit()

    # --- Metric samples ---

    def append_sample(self, sample: MetricSample):
        row = sample.to_row()
        placeholders = ", ".join("?" for _ in SAMPLE_COLUMNS)
        self.conn.execute(
            f"INSERT INTO metrics ({', '.join(SAMPLE_COLUMNS)}) VALUES ({placeholders})",
            [row[c] for c in SAMPLE_COLUMNS],
        )
        self.conn.commit()
        logger.debug(f"Stored sample at {row['timestamp']}")

    def samples_since(self, ts):
        rows = self.conn.execute(
            "SELECT * FROM metrics WHERE timestamp >= ? ORDER BY timestamp ASC", (ts,)
        ).fetchall()
        return [MetricSample.from_row(r) for r in rows]

    def samples_in_range(self, start_ts, end_ts):
        rows = self.conn.execute("""
            SELECT * FROM metrics WHERE timestamp >= ? AND timestamp <= ?
            ORDER BY timestamp ASC
        """, (start_ts, end_ts)).fetchall()
        return [MetricSample.from_row(r) for r in rows]

    def latest_sample(self):
        row = self.conn.execute(
            "SELECT * FROM metrics ORDER BY timestamp DESC, id DESC LIMIT 1"
        ).fetchone()
        return MetricSample.from_row(row) if row else None

    def daily_averages(self, days, now=None):
        """One DailyAggregate per UTC calendar day, oldest first, ending with today."""
        now = now if now is not None else now_ms()
        today = datetime.fromtimestamp(now / 1000, tz=timezone.utc).date()
        first = today - timedelta(days=days - 1)
        start_ts = int(datetime(first.year, first.month, first.day, tzinfo=timezone.utc).timestamp() * 1000)

        rows = self.conn.execute("""
            SELECT date(timestamp / 1000, 'unixepoch') AS day,
                   AVG(cpu_percent) AS avg_cpu,
                   AVG(memory_percent) AS avg_memory,
                   MAX(http_requests_total) - MIN(http_requests_total) AS total_requests
            FROM metrics
            WHERE timestamp >= ? AND timestamp <= ?
            GROUP BY day
        """, (start_ts, now)).fetchall()
        by_day = {r["day"]: r for r in rows}

        result = []
        for offset in range(days):
            day = (first + timedelta(days=offset)).isoformat()
            r = by_day.get(day)
            if r is None:
                result.append(DailyAggregate(day=day, avg_cpu=None, avg_memory=None, total_requests=0))
            else:
                result.append(DailyAggregate(
                    day=day,
                    avg_cpu=r["avg_cpu"],
                    avg_memory=r["avg_memory"],
                    total_requests=max(r["total_requests"] or 0, 0),
                ))
        return result

    # --- Alert history ---

    def append_alert(self, record: AlertRecord):
        cur = self.conn.execute("""
            INSERT INTO alerts (timestamp, message, severity, category, title)
            VALUES (?, ?, ?, ?, ?)
        """, (record.timestamp, record.message, record.severity, record.category, record.title))
        self.conn.commit()
        return cur.lastrowid

    def alerts_since(self, ts):
        rows = self.conn.execute(
            "SELECT * FROM alerts WHERE timestamp >= ? ORDER BY timestamp ASC", (ts,)
        ).fetchall()
        return [AlertRecord.from_row(r) for r in rows]

    def recent_alerts(self, limit=50):
        rows = self.conn.execute(
            "SELECT * FROM alerts ORDER BY timestamp DESC, id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [AlertRecord.from_row(r) for r in rows]

    # --- Retention ---

    def prune_older_than(self, ts):
        """Delete samples and alerts strictly older than ts. Returns rows removed."""
        removed = self.conn.execute("DELETE FROM metrics WHERE timestamp < ?", (ts,)).rowcount
        removed += self.conn.execute("DELETE FROM alerts WHERE timestamp < ?", (ts,)).rowcount
        self.conn.commit()
        logger.info(f"Pruned {removed} rows older than {ts}")
        return removed

    def vacuum(self):
        self.conn.execute("VACUUM")
        logger.debug("Database vacuumed")

    # --- Key/value config blobs ---

    def set_value(self, key, value):
        self.conn.execute("""
            INSERT INTO config (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        """, (key, json.dumps(value), now_ms()))
        self.conn.commit()

    def get_value(self, key, default=None):
        row = self.conn.execute("SELECT value FROM config WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            logger.warning(f"Stored value for {key!r} is not valid JSON, ignoring")
            return default

    # --- Change-detection snapshots ---

    def save_snapshot(self, kind, key, data):
        self.conn.execute("""
            INSERT INTO network_snapshots (kind, key, data, updated_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(kind, key) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
        """, (kind, key, json.dumps(data), now_ms()))
        self.conn.commit()

    def get_snapshot(self, kind, key):
        row = self.conn.execute(
            "SELECT data FROM network_snapshots WHERE kind = ? AND key = ?", (kind, key)
        ).fetchone()
        return json.loads(row["data"]) if row else None

    def all_snapshots(self, kind):
        rows = self.conn.execute(
            "SELECT key, data FROM network_snapshots WHERE kind = ? ORDER BY key", (kind,)
        ).fetchall()
        return {r["key"]: json.loads(r["data"]) for r in rows}

    def clear_snapshots(self, kind=None):
        if kind is None:
            self.conn.execute("DELETE FROM network_snapshots")
        else:
            self.conn.execute("DELETE FROM network_snapshots WHERE kind = ?", (kind,))
        self.conn.commit()

    # --- Stats ---

    def get_stats(self):
        stats = {}
        for table in ("metrics", "alerts", "config", "network_snapshots"):
            stats[f"{table}_rows"] = self.conn.execute(f"SELECT COUNT(*) AS cnt FROM {table}").fetchone()["cnt"]
        bounds = self.conn.execute("SELECT MIN(timestamp) AS oldest, MAX(timestamp) AS newest FROM metrics").fetchone()
        stats["oldest_sample"] = bounds["oldest"]
        stats["newest_sample"] = bounds["newest"]
        path = Path(self.db_path)
        stats["size_bytes"] = path.stat().st_size if self.db_path != ":memory:" and path.exists() else 0
        return stats
