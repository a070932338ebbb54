"""Helpers that shape request and response bodies for the admin routes."""
from collections.abc import Iterable
from typing import Any


def remove_deep(value: Any, keys: Iterable[str]) -> Any:
    """Return a copy of ``value`` with ``keys`` removed from every nested dict.

    Lists are walked element by element, so related entities populated into a
    result lose the same keys as the entity itself.
    """
    keys = frozenset(keys)
    return _remove_deep(value, keys)


def _remove_deep(value: Any, keys: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return {
            key: _remove_deep(item, keys)
            for key, item in value.items()
            if key not in keys
        }
    if isinstance(value, list):
        return [_remove_deep(item, keys) for item in value]
    return value


def strip_response(entity: Any, blacklist: Iterable[str], identity_key: str) -> Any:
    """Remove blacklisted keys from an outgoing entity, envelope or list.

    The identity key survives even when it appears in the blacklist.
    """
    return remove_deep(entity, [key for key in blacklist if key != identity_key])


def clean_request(body: dict[str, Any], blacklist: Iterable[str]) -> dict[str, Any]:
    """Drop blacklisted top-level keys from an incoming body."""
    blacklist = set(blacklist)
    return {key: value for key, value in body.items() if key not in blacklist}


def expand_dotted_keys(body: dict[str, Any]) -> dict[str, Any]:
    """Fold ``"address.street"`` style keys into nested objects.

    Form-encoded admin clients send nested fields flattened with dots; the
    dotted keys are replaced by a nested dict under their first segment.
    """
    expanded: dict[str, Any] = {}
    for key, value in body.items():
        if "." not in key:
            if isinstance(value, dict):
                # dotted keys already folded in take precedence
                expanded[key] = {**value, **expanded.get(key, {})}
            else:
                expanded[key] = value
            continue

        head, rest = key.split(".", 1)
        target = expanded.get(head)
        if not isinstance(target, dict):
            target = {}
            expanded[head] = target
        target[rest] = value
    return expanded
