"""
Range list parser for files and command-line values.
"""
from pathlib import Path
from typing import List, Union

from loguru import logger

from hunting.origin.errors import ConfigurationError, RangeParseError
from hunting.origin.services.address_range import AddressRange

COMMENT_PREFIXES = ("#", "//")


class RangeFileParser:
    """
    Reads CIDR ranges from a text file or a comma-separated string.

    Example:
        parser = RangeFileParser()
        # One CIDR per line, '#' and '//' comments allowed
        ranges = parser.load("ips.txt")
        # Comma-separated list from the command line
        ranges = parser.parse_list("35.207.0.0/16, 10.0.0.0/24")
    """

    def load(self, path: Union[str, Path]) -> List[str]:
        """
        Load and validate ranges from a file.

        Args:
            path: File with one CIDR range per line

        Returns:
            The valid ranges in file order

        Raises:
            ConfigurationError: The file cannot be read or holds no valid range
        """
        path = Path(path)
        logger.info("Loading IP ranges from: {}", path)

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Failed to read IP ranges from {path}: {e}") from e

        ranges = self.parse_lines(content.splitlines())
        if not ranges:
            raise ConfigurationError(f"No valid IP ranges found in {path}")

        logger.info("Loaded {} valid IP range(s) from file", len(ranges))
        return ranges

    def parse_lines(self, lines) -> List[str]:
        ranges = []
        for line_num, line in enumerate(lines, 1):
            trimmed = line.strip()
            if not trimmed or trimmed.startswith(COMMENT_PREFIXES):
                continue

            try:
                AddressRange.parse(trimmed)
            except RangeParseError as e:
                logger.warning("⚠ Invalid CIDR format on line {}: '{}' - {}", line_num, trimmed, e)
                continue
            ranges.append(trimmed)
        return ranges

    def parse_list(self, value: str) -> List[str]:
        """Split a comma-separated range list; entries are not validated here."""
        return [part.strip() for part in value.split(",") if part.strip()]
