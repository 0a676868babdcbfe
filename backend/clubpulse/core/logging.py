import logging, json, sys

# extra= fields merged into the JSON record when present
EXTRA_KEYS = [
    "trace_id", "method", "path", "status", "duration_ms",
    "entry_id", "recipient", "template", "row", "reason", "operator",
    "checked", "flagged", "queued", "skipped", "errors", "sent", "failed",
    "event_type", "message_id", "channel", "event", "job",
]


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover (formatting)
        base = {
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in EXTRA_KEYS:
            if hasattr(record, k):
                base[k] = getattr(record, k)
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def init_logging(level: str | None = None):
    level = (level or "INFO").upper()
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("uvicorn.access").propagate = False
    logging.getLogger("uvicorn.error").propagate = False
    # googleapiclient is chatty about discovery cache at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
