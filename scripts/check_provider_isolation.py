#!/usr/bin/env python3
"""Destination isolation validation script.

Enforces the architectural rule that core/, types/, and utils/ directories
must remain independent of any notification service. References to a
specific service (Gotify, or any future destination plugin) are only allowed
in the plugins/ directory, in the configuration module and in the entry point.

This script scans for:
- Direct imports from portwatch.plugins.<service>
- Hardcoded service name strings in code, comments, or docstrings
- Service-specific configuration field names (e.g., gotify_destinations)

Exit codes:
    0: No violations found (clean)
    1: Violations detected (architectural rule broken)
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Final

# ANSI color codes for terminal output
RED: Final[str] = "\033[91m"
GREEN: Final[str] = "\033[92m"
YELLOW: Final[str] = "\033[93m"
RESET: Final[str] = "\033[0m"

# Directories that must remain service-agnostic
PROTECTED_DIRS: Final[tuple[str, ...]] = ("core", "types", "utils")

# Known destination plugin names
PROVIDER_NAMES: Final[tuple[str, ...]] = ("gotify",)

_NAMES_ALTERNATION: Final[str] = "|".join(PROVIDER_NAMES)

IMPORT_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"(?:from|import)\s+portwatch\.plugins\.(?:{_NAMES_ALTERNATION})\b"
)

PROVIDER_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(rf"\b(?:{_NAMES_ALTERNATION})\b", re.IGNORECASE)

CONFIG_FIELD_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b(?:{_NAMES_ALTERNATION})_(?:enabled|config|settings|destinations)\b", re.IGNORECASE
)


def check_file(file_path: Path) -> list[tuple[int, str]]:
    """Check a single Python file for isolation violations.

    Returns:
        List of (line_number, violation_description) tuples.
    """
    violations: list[tuple[int, str]] = []

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"{YELLOW}Warning: Could not read {file_path}: {e}{RESET}", file=sys.stderr)
        return violations

    for line_num, line in enumerate(content.splitlines(), start=1):
        if IMPORT_PATTERN.search(line):
            violations.append((line_num, f"Direct import from destination plugin: {line.strip()}"))
        elif CONFIG_FIELD_PATTERN.search(line):
            violations.append((line_num, f"Service-specific config field: {line.strip()}"))
        elif PROVIDER_NAME_PATTERN.search(line):
            violations.append((line_num, f"Hardcoded service name reference: {line.strip()}"))

    return violations


def scan_directory(base_path: Path, protected_dir: str) -> dict[Path, list[tuple[int, str]]]:
    """Scan a protected directory recursively for violations."""
    dir_path = base_path / protected_dir
    if not dir_path.exists():
        print(
            f"{YELLOW}Warning: Protected directory {dir_path} does not exist{RESET}",
            file=sys.stderr,
        )
        return {}

    violations_by_file: dict[Path, list[tuple[int, str]]] = {}

    for py_file in dir_path.rglob("*.py"):
        if "__pycache__" in py_file.parts:
            continue

        file_violations = check_file(py_file)
        if file_violations:
            violations_by_file[py_file] = file_violations

    return violations_by_file


def main() -> int:
    """Main entry point for the isolation check.

    Returns:
        Exit code: 0 if no violations, 1 if violations found.
    """
    script_dir = Path(__file__).parent
    project_root = script_dir.parent
    src_path = project_root / "src" / "portwatch"

    if not src_path.exists():
        print(f"{RED}Error: Could not find src/portwatch directory{RESET}", file=sys.stderr)
        return 1

    print("Checking destination isolation in core, types, and utils modules...")
    print(f"Scanning: {src_path}\n")

    all_violations: dict[Path, list[tuple[int, str]]] = {}
    for protected_dir in PROTECTED_DIRS:
        all_violations.update(scan_directory(src_path, protected_dir))

    if not all_violations:
        print(f"{GREEN}✓ No destination isolation violations found!{RESET}")
        return 0

    total_violations = sum(len(v) for v in all_violations.values())
    print(f"{RED}✗ Found {total_violations} destination isolation violations:{RESET}\n")

    for file_path, violations in sorted(all_violations.items()):
        try:
            rel_path = file_path.relative_to(project_root)
        except ValueError:
            rel_path = file_path

        print(f"{RED}{rel_path}{RESET}")
        for line_num, description in violations:
            print(f"  {line_num}: {description}")
        print()

    print(f"{RED}Destination isolation check failed!{RESET}")
    print(
        "\nCore, types, and utils modules must remain service-agnostic."
        "\nMove service-specific code to plugins/<service>/ directory."
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
