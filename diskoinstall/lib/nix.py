"""
Helpers for talking to the nix evaluator in its own expression syntax.
"""

import re
from collections.abc import Mapping

_STRING = r'"((?:[^"\\]|\\.)*)"'
_ATTR_REGEX = re.compile(rf'\s*{_STRING}\s*=\s*{_STRING}\s*;', re.DOTALL)
_UNESCAPE_REGEX = re.compile(r'\\(.)', re.DOTALL)


def escape_nix_string(value: str) -> str:
	"""
	Escapes ``value`` for use inside a double quoted nix string.
	``${`` is escaped too, otherwise nix would treat it as an interpolation.
	"""
	return value.replace('\\', '\\\\').replace('"', '\\"').replace('${', '\\${')


def unescape_nix_string(value: str) -> str:
	return _UNESCAPE_REGEX.sub(lambda m: m.group(1), value)


def serialize_attrs(mapping: Mapping[str, str]) -> str:
	"""
	Renders a flat string to string mapping as a nix attribute set,
	e.g. ``{ "main" = "/dev/sda"; }``. An empty mapping renders as ``{ }``.
	"""
	entries = ''.join(
		f'"{escape_nix_string(key)}" = "{escape_nix_string(value)}"; '
		for key, value in mapping.items()
	)
	return f'{{ {entries}}}'


def deserialize_attrs(text: str) -> dict[str, str]:
	"""
	Inverse of :func:`serialize_attrs`. Only understands the flat
	string-valued form that function produces.
	"""
	text = text.strip()

	if not (text.startswith('{') and text.endswith('}')):
		raise ValueError(f'Not a nix attribute set: {text!r}')

	body = text[1:-1]
	result: dict[str, str] = {}
	pos = 0

	while match := _ATTR_REGEX.match(body, pos):
		result[unescape_nix_string(match.group(1))] = unescape_nix_string(match.group(2))
		pos = match.end()

	if body[pos:].strip():
		raise ValueError(f'Unexpected content in attribute set: {body[pos:]!r}')

	return result
