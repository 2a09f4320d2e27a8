"""Read an OpenCLI document from disk.

The only filesystem access for specs lives here; parsing itself is
:func:`opencli_wrap.core.spec_parser.parse_spec`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from opencli_wrap.core.models import Spec
from opencli_wrap.core.spec_parser import parse_spec
from opencli_wrap.exceptions import SpecParseError

logger = logging.getLogger(__name__)


def load_spec(path: str | Path) -> Spec:
    """Read *path* as UTF-8 and parse it.

    Raises
    ------
    SpecParseError
        When the file cannot be read or its content is not a valid spec.
    """
    spec_path = Path(path)
    try:
        text = spec_path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise SpecParseError(
            f"Spec file not found: {spec_path}",
            hint="Pass the path of an *.opencli.json document.",
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Cannot read spec file {spec_path}: {exc}") from exc

    logger.debug("Loaded spec from %s (%d bytes)", spec_path, len(text))
    return parse_spec(text)
