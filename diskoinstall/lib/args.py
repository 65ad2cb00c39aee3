import json
import re
from argparse import ArgumentParser
from dataclasses import dataclass, field
from enum import Enum
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import NoReturn, override

from pydantic import ValidationError
from pydantic.dataclasses import dataclass as p_dataclass

from .exceptions import ConfigError

# everything after the last '#' is the attribute, as long as it holds no '#' or '"'
_FLAKE_ATTR_REGEX = re.compile(r'^(.*)#([^#"]*)$')

_MISSING_ATTR_HELP = (
	'Please specify the name of the NixOS configuration to be installed, as a URI fragment in the flake-uri.\n'
	'For example, to use the output nixosConfigurations.foo from the flake.nix, append "#foo" to the flake-uri.'
)


class InstallMode(Enum):
	FORMAT = 'format'
	MOUNT = 'mount'

	def disko_attr(self) -> str:
		"""
		Name of the build output holding the script for this mode
		"""
		match self:
			case InstallMode.FORMAT:
				return 'diskoScript'
			case InstallMode.MOUNT:
				return 'mountScript'

	@classmethod
	def from_arg(cls, mode: str) -> 'InstallMode':
		try:
			return cls(mode)
		except ValueError:
			values = ', '.join(e.value for e in cls)
			raise ConfigError(f'Invalid mode "{mode}". Allowed values: {values}') from None


@p_dataclass
class Arguments:
	mode: str = InstallMode.FORMAT.value
	flake: str | None = None
	disk: list[tuple[str, str]] = field(default_factory=list)
	extra_files: list[tuple[str, str]] = field(default_factory=list)
	option: list[tuple[str, str]] = field(default_factory=list)
	system_config: str | None = None
	write_efi_boot_entries: bool = False
	dry_run: bool = False
	show_trace: bool = False
	help: bool = False
	version: bool = False


@dataclass(frozen=True)
class RunConfig:
	flake: str
	flake_attr: str
	mode: InstallMode = InstallMode.FORMAT
	disk_mappings: dict[str, str] = field(default_factory=dict)
	extra_files: dict[str, str] = field(default_factory=dict)
	system_config: str = '{}'
	write_efi_boot_entries: bool = False
	nix_options: tuple[tuple[str, str], ...] = ()
	show_trace: bool = False
	dry_run: bool = False

	def json(self) -> dict[str, object]:
		return {
			'flake': self.flake,
			'flake_attr': self.flake_attr,
			'mode': self.mode.value,
			'disk_mappings': self.disk_mappings,
			'extra_files': self.extra_files,
			'system_config': self.system_config,
			'write_efi_boot_entries': self.write_efi_boot_entries,
			'nix_options': [list(o) for o in self.nix_options],
			'show_trace': self.show_trace,
			'dry_run': self.dry_run,
		}


def parse_flake_ref(reference: str) -> tuple[str, str]:
	"""
	Splits ``path#attr`` into the flake location and the attribute name.
	Locations that exist on disk are made absolute with symlinks resolved,
	anything else (``github:owner/repo`` etc) is passed through untouched.
	"""
	if not (match := _FLAKE_ATTR_REGEX.match(reference)):
		raise ConfigError(_MISSING_ATTR_HELP)

	flake, flake_attr = match.group(1), match.group(2)

	if not flake_attr:
		raise ConfigError(_MISSING_ATTR_HELP)

	if not flake:
		raise ConfigError(f'Flake reference "{reference}" has no location before the "#"')

	if Path(flake).exists():
		flake = str(Path(flake).resolve())

	return flake, flake_attr


def parse_system_config(text: str) -> str:
	try:
		value = json.loads(text)
	except json.JSONDecodeError as err:
		raise ConfigError(f'--system-config is not valid JSON: {err}') from err

	if not isinstance(value, dict):
		raise ConfigError('--system-config must be a JSON object')

	return text


class _Parser(ArgumentParser):
	@override
	def error(self, message: str) -> NoReturn:
		raise ConfigError(message)


class ConfigHandler:
	def __init__(self, argv: list[str]) -> None:
		self._parser: ArgumentParser = self._define_arguments()
		self._argv = argv
		self._args: Arguments = self._parse_args()

	@property
	def args(self) -> Arguments:
		return self._args

	@classmethod
	def usage(cls) -> str:
		return cls._define_arguments().format_usage()

	@classmethod
	def help_text(cls) -> str:
		return cls._define_arguments().format_help()

	def get_version(self) -> str:
		try:
			return version('diskoinstall')
		except PackageNotFoundError:
			return 'diskoinstall version not found'

	@staticmethod
	def _define_arguments() -> ArgumentParser:
		parser = _Parser(
			prog='diskoinstall',
			description='Format a disk with disko and install a NixOS configuration from a flake onto it.',
			add_help=False,
			allow_abbrev=False,
		)
		parser.add_argument(
			'--mode',
			type=str,
			default=InstallMode.FORMAT.value,
			metavar='MODE',
			help='"format" formats the disks before installing, "mount" only mounts them (default: format)',
		)
		parser.add_argument(
			'-f',
			'--flake',
			type=str,
			default=None,
			metavar='FLAKE_URI#ATTR',
			help='Flake to install, including the nixosConfigurations attribute to use',
		)
		parser.add_argument(
			'--disk',
			nargs=2,
			action='append',
			default=[],
			metavar=('NAME', 'DEVICE'),
			help='Map the disk NAME of the disko configuration to DEVICE, e.g. --disk main /dev/sda',
		)
		parser.add_argument(
			'--dry-run',
			action='store_true',
			default=False,
			help='Print the commands that would be run instead of running them',
		)
		parser.add_argument(
			'--show-trace',
			action='store_true',
			default=False,
			help='Show the nix evaluation trace on errors',
		)
		parser.add_argument(
			'--extra-files',
			nargs=2,
			action='append',
			default=[],
			metavar=('SOURCE', 'DEST'),
			help='Copy SOURCE to DEST on the installed system after formatting',
		)
		parser.add_argument(
			'--option',
			nargs=2,
			action='append',
			default=[],
			metavar=('NAME', 'VALUE'),
			help='Pass an option to nix, like --option in nix-build',
		)
		parser.add_argument(
			'--write-efi-boot-entries',
			action='store_true',
			default=False,
			help='Write EFI boot entries to the NVRAM of the current machine',
		)
		parser.add_argument(
			'--system-config',
			type=str,
			default=None,
			metavar='JSON',
			help='JSON object merged into the NixOS configuration of the target system',
		)
		parser.add_argument(
			'-h',
			'--help',
			action='store_true',
			default=False,
			help='Show this help message and exit',
		)
		parser.add_argument(
			'-V',
			'--version',
			action='store_true',
			default=False,
			help='Show the version and exit',
		)

		return parser

	def _parse_args(self) -> Arguments:
		if not self._argv:
			raise ConfigError('No arguments given')

		argparse_args = vars(self._parser.parse_args(self._argv))

		try:
			return Arguments(**argparse_args)
		except ValidationError as err:
			raise ConfigError(str(err)) from err

	def build_config(self) -> RunConfig:
		"""
		Validates the parsed arguments into the configuration of one run.
		No external effects happen before this succeeds, nothing is logged.
		"""
		args = self._args

		mode = InstallMode.from_arg(args.mode)

		if not args.flake:
			raise ConfigError('Please specify the flake with -f/--flake')

		flake, flake_attr = parse_flake_ref(args.flake)

		system_config = '{}'
		if args.system_config is not None:
			system_config = parse_system_config(args.system_config)

		config = RunConfig(
			flake=flake,
			flake_attr=flake_attr,
			mode=mode,
			disk_mappings=dict(args.disk),
			extra_files=dict(args.extra_files),
			system_config=system_config,
			write_efi_boot_entries=args.write_efi_boot_entries,
			nix_options=tuple(args.option),
			show_trace=args.show_trace,
			dry_run=args.dry_run,
		)

		return config
