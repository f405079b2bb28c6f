"""Reference-file diff: validate a translation against ``en_us.json``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from .scanner import ScannedEntry, scan_entries

logger = logging.getLogger(__name__)

REFERENCE_NAME = "en_us.json"
VALIDATED_SUFFIXES = (".json", ".jsonc")


class Severity(Enum):
    ERROR = auto()
    WARNING = auto()


@dataclass(frozen=True)
class Finding:
    """문서 한 곳에 대한 진단 (offset 범위 + 메시지)."""

    path: str
    start: int
    end: int
    message: str
    severity: Severity
    key: str = ""


@dataclass
class ValidationResult:
    """후보 파일과 참조 파일 각각의 진단 목록."""

    candidate_path: str
    reference_path: str
    candidate_findings: list[Finding] = field(default_factory=list)
    reference_findings: list[Finding] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(
            f.severity is Severity.ERROR
            for f in self.candidate_findings + self.reference_findings
        )


def reference_path_for(path: str | Path, name: str = REFERENCE_NAME) -> Path:
    return Path(path).parent / name


def load_reference(path: str | Path) -> tuple[str, dict] | None:
    """Read and strictly parse the reference file.

    Returns ``(raw_text, mapping)``, or ``None`` when the file is missing,
    unreadable, not valid JSON or not an object. Nothing is cached.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
        parsed = json.loads(raw)
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
        logger.debug("reference %s unusable: %s", path, e)
        return None
    if not isinstance(parsed, dict):
        logger.debug("reference %s is not an object", path)
        return None
    return raw, parsed


def _first_occurrences(text: str) -> dict[str, ScannedEntry]:
    found: dict[str, ScannedEntry] = {}
    for entry in scan_entries(text):
        found.setdefault(entry.key, entry)
    return found


def diff_against_reference(
    candidate_path: str,
    candidate_text: str,
    reference_path: str,
    reference_text: str,
    reference_map: dict,
) -> ValidationResult:
    """Compare the candidate scan with the parsed reference.

    Unknown keys are errors, empty translations are warnings (on the
    candidate); reference keys the candidate never mentions are errors on
    the reference, located by re-scanning its raw text.
    """
    result = ValidationResult(str(candidate_path), str(reference_path))
    candidate_name = Path(candidate_path).name
    reference_name = Path(reference_path).name
    found_keys: set[str] = set()

    for entry in scan_entries(candidate_text):
        found_keys.add(entry.key)
        if entry.key not in reference_map:
            result.candidate_findings.append(
                Finding(
                    str(candidate_path),
                    entry.key_start,
                    entry.key_end,
                    f"Key not present in {reference_name}",
                    Severity.ERROR,
                    entry.key,
                )
            )
        elif entry.value == "":
            result.candidate_findings.append(
                Finding(
                    str(candidate_path),
                    entry.key_start,
                    entry.key_end,
                    "Translation is empty",
                    Severity.WARNING,
                    entry.key,
                )
            )

    missing = [key for key in reference_map if key not in found_keys]
    if missing:
        located = _first_occurrences(reference_text)
        for key in missing:
            entry = located.get(key)
            if entry is None:
                # 위치를 찾지 못하면 잘못된 위치로 보고하지 않음
                continue
            result.reference_findings.append(
                Finding(
                    str(reference_path),
                    entry.key_start,
                    entry.key_end,
                    f"Missing translation in {candidate_name}",
                    Severity.ERROR,
                    key,
                )
            )
    return result


def validate_file(
    path: str | Path,
    text: str,
    *,
    reference_name: str = REFERENCE_NAME,
) -> ValidationResult | None:
    """Validate *text* (the current content of *path*) against its reference.

    Returns ``None`` when there is nothing to validate against: the file is
    not JSON, is the reference itself, has no reference beside it, or the
    reference does not parse.
    """
    path = Path(path)
    if path.suffix.lower() not in VALIDATED_SUFFIXES:
        return None
    if path.name == reference_name:
        return None
    ref_path = reference_path_for(path, reference_name)
    loaded = load_reference(ref_path)
    if loaded is None:
        logger.debug("skip %s: no usable %s", path, reference_name)
        return None
    ref_text, ref_map = loaded
    return diff_against_reference(str(path), text, str(ref_path), ref_text, ref_map)
