"""Provider Configuration File

Reads provider options from an INI-style file. Keys are prefixed with the
provider name, e.g.:

    Google_clientId     = "xxx.apps.googleusercontent.com"
    Google_clientSecret = "GOCSPX-xxx"
    Joomla_urlAuthorize = "https://joomla.example.org/index.php"

Section headers are optional; all sections are merged. A key given twice
keeps its last value. The file is read
on every call so configuration changes apply to the next login attempt.
"""

import configparser
import logging
from pathlib import Path
from typing import Dict, Mapping, Protocol

logger = logging.getLogger(__name__)

_DEFAULT_SECTION = "oauth2"


class ProviderConfigSource(Protocol):
    """Source of raw provider configuration keys"""

    def read(self) -> Mapping[str, str]:
        ...


class IniProviderConfigSource:
    """Provider configuration read from an INI-style key/value file"""

    def __init__(self, path: str):
        self.path = Path(path)

    def read(self) -> Dict[str, str]:
        """Read all key/value pairs of the configuration file

        Returns:
            Flat mapping of configuration keys; empty if the file is missing or unreadable
        """
        if not self.path.exists():
            logger.warning(f"Provider configuration file not found: {self.path}")
            return {}

        text = self.path.read_text(encoding="utf-8")
        parser = configparser.ConfigParser(
            interpolation=None, delimiters=("=",), default_section=_DEFAULT_SECTION, strict=False
        )
        parser.optionxform = str  # keep option case, e.g. clientId

        try:
            if not text.lstrip().startswith("["):
                text = f"[{_DEFAULT_SECTION}]\n{text}"
            parser.read_string(text, source=str(self.path))
        except configparser.Error as e:
            logger.error(f"Failed to parse provider configuration {self.path}: {e}")
            return {}

        values: Dict[str, str] = {}
        for key, value in parser.defaults().items():
            values[key] = _unquote(value)
        for section in parser.sections():
            for key, value in parser.items(section):
                values[key] = _unquote(value)
        return values


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value
