"""Generate-name prefixes for tests and validation of platform-assigned names."""

from __future__ import annotations

import re
import secrets
import string

from genname_conformance.core.errors import NameMismatch

TEST_NAME_PREFIX = "Test"
RANDOM_SUFFIX_LENGTH = 8
DEFAULT_MAX_PREFIX_LENGTH = 44

# Characters the platform may append to a generateName.
GENERATED_SUFFIX_CLASS = r"[a-zA-Z0-9\-.]+"


def make_k8s_name_prefix(name: str) -> str:
    """Lower-kebab-case a test name: "RouteAndConfig/sub_test" -> "route-and-config-sub-test"."""
    out: list[str] = []
    new_token = False
    for ch in name:
        if not ch.isalnum():
            new_token = True
            continue
        if out and (new_token or ch.isupper()):
            out.append("-")
        out.append(ch.lower())
        new_token = False
    return "".join(out)


def random_string(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(string.ascii_lowercase) for _ in range(length))


def object_name_for_test(test_name: str) -> str:
    """Unique object name for a test: kebab-cased name plus a random suffix."""
    base = make_k8s_name_prefix(test_name.removeprefix(TEST_NAME_PREFIX))
    return f"{base}-{random_string()}" if base else random_string()


def generate_name_prefix(test_name: str, max_length: int = DEFAULT_MAX_PREFIX_LENGTH) -> str:
    """Return the generateName for a test, truncated to max_length.

    Long generateNames compound into revision names and can keep
    resources from ever becoming ready, hence the cap.
    """
    if max_length < 1:
        raise ValueError("max_length must be positive")
    generate_name = object_name_for_test(test_name) + "-"
    return generate_name[:max_length]


def name_pattern(generate_name: str) -> re.Pattern[str]:
    return re.compile("^" + re.escape(generate_name) + GENERATED_SUFFIX_CLASS + "$")


def validate_name(generate_name: str, name: str) -> None:
    """Check that name was generated from generate_name.

    The prefix must be followed by at least one character from
    [a-zA-Z0-9-.]; a name equal to the prefix means no suffix was
    appended. Raises NameMismatch otherwise.
    """
    pattern = name_pattern(generate_name)
    # fullmatch so a trailing newline cannot satisfy "$"
    if not pattern.fullmatch(name):
        raise NameMismatch(generate_name, name, pattern.pattern)
