import logging


class SingleLineNonEmptyFilter(logging.Filter):
    """
    Logging filter for records that may carry captured probe output.
    - Collapses newlines into spaces and strips surrounding whitespace.
    - Drops the record if the resulting message is empty.
    - Truncates messages longer than max_length, keeping the head.
    """
    def __init__(self, max_length: int = 4096):
        super().__init__()
        self.max_length = max_length

    def filter(self, record: logging.LogRecord) -> int:
        try:
            msg = record.getMessage()
        except Exception:
            return 0

        if not isinstance(msg, str):
            msg = str(msg)

        sanitized = " ".join(msg.splitlines()).strip()

        if sanitized == "":
            return 0

        if self.max_length and len(sanitized) > self.max_length:
            omitted = len(sanitized) - self.max_length
            sanitized = f"{sanitized[:self.max_length]}... [{omitted} chars truncated]"

        if sanitized != record.getMessage():
            record.msg = sanitized
            record.args = ()
        return 1
