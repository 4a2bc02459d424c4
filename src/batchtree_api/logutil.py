import logging
import re
from typing import Iterable, Union


class RedactingFilter(logging.Filter):
    """Redact signing-key material and other secrets from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = str(record.getMessage())
            msg = re.sub(
                r"(Authorization:?)\s+\S+", r"\1 ***", msg, flags=re.IGNORECASE
            )
            msg = re.sub(
                r"\b(token|secret|password|sk|key)=\S+", r"\1=***", msg, flags=re.IGNORECASE
            )
            record.msg = msg
            record.args = ()
        except Exception:
            pass
        return True


def setup_logging(
    level: Union[int, str] = logging.INFO,
    loggers: Iterable[str] = ("batchtree_api", "batchtree_cli", "uvicorn", "uvicorn.access"),
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level)
    f = RedactingFilter()
    # logger filters skip records propagated from child loggers; handlers see all
    for h in logging.getLogger().handlers:
        h.addFilter(f)
    for name in loggers:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.addFilter(f)
