import pytest

from diskoinstall.lib.nix import deserialize_attrs, escape_nix_string, serialize_attrs


def test_empty_mapping() -> None:
	assert serialize_attrs({}) == '{ }'
	assert deserialize_attrs('{ }') == {}


def test_single_entry() -> None:
	assert serialize_attrs({'main': '/dev/sda'}) == '{ "main" = "/dev/sda"; }'


def test_every_entry_appears_once() -> None:
	mapping = {'main': '/dev/sda', 'data': '/dev/nvme0n1', 'backup': '/dev/disk/by-id/usb-1'}
	serialized = serialize_attrs(mapping)

	for key, value in mapping.items():
		assert serialized.count(f'"{key}" = "{value}";') == 1

	assert deserialize_attrs(serialized) == mapping


@pytest.mark.parametrize(
	'mapping',
	[
		{'main': '/dev/sda'},
		{'we"ird': 'va"lue'},
		{'"': '""'},
		{'back\\slash': 'C:\\disk\\"quoted\\"'},
		{'interp': '${builtins.currentSystem}'},
		{'multi\nline': 'tab\there'},
		{'a': '', '': 'b'},
	],
)
def test_round_trip(mapping: dict[str, str]) -> None:
	serialized = serialize_attrs(mapping)

	assert deserialize_attrs(serialized) == mapping
	assert deserialize_attrs(serialize_attrs(deserialize_attrs(serialized))) == mapping


def test_quotes_are_escaped() -> None:
	serialized = serialize_attrs({'disk "one"': '/dev/"sda"'})
	assert serialized == '{ "disk \\"one\\"" = "/dev/\\"sda\\""; }'


def test_interpolation_is_escaped() -> None:
	assert escape_nix_string('${x}') == '\\${x}'
	assert escape_nix_string('$x') == '$x'


@pytest.mark.parametrize(
	'text',
	[
		'',
		'"main" = "/dev/sda";',
		'{ "main" = "/dev/sda" }',
		'{ main = "/dev/sda"; }',
		'{ "main" = "/dev/sda"; junk }',
	],
)
def test_deserialize_rejects_malformed(text: str) -> None:
	with pytest.raises(ValueError):
		deserialize_attrs(text)
