import sys

COLOR_MAP = {
    # Findings - Green
    "FOUND": "\033[92m",
    "SUCCESS": "\033[92m",
    "SCAN_COMPLETE": "\033[92m",
    "RESULT": "\033[92m",

    # Nothing found / failures - Red
    "NOT_FOUND": "\033[91m",
    "ERROR": "\033[91m",

    # Stop notices - Yellow
    "STOPPING": "\033[93m",
    "WARNING": "\033[93m",

    # Configuration - Blue
    "INFO": "\033[94m",
    "CONFIG": "\033[94m",

    # Headers - Cyan
    "BANNER": "\033[96m",
    "RANGE_START": "\033[96m",
    "SINGLE_IP": "\033[96m",
}

RESET = "\033[0m"
RULE_COLOR = "\033[96m"


class Logger:
    """Colour-tagged console lines on stdout for findings and summaries."""

    def __init__(self, stream=None, color=None):
        self.stream = stream if stream is not None else sys.stdout
        if color is None:
            color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.color = color

    def log(self, message, level="INFO", details=None):
        if self.color:
            # Default to white for unknown tags
            tag = f"{COLOR_MAP.get(level, chr(27) + '[97m')}[{level}]{RESET}"
        else:
            tag = f"[{level}]"

        log_line = f"{tag} {message}"
        if details:
            log_line += f" | {details}"

        print(log_line, file=self.stream, flush=True)

    def rule(self, width=60):
        line = "=" * width
        if self.color:
            line = f"{RULE_COLOR}{line}{RESET}"
        print(line, file=self.stream, flush=True)
