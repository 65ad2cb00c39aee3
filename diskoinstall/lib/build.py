import json
import os
from dataclasses import dataclass
from pathlib import Path
from shutil import which

from .args import RunConfig
from .exceptions import BuildError, RequirementError, SysCallError
from .general import SysCommand
from .nix import serialize_attrs
from .output import debug, info

# nom-build is a drop-in replacement of nix-build with nicer progress output
_BUILDERS = ('nom-build', 'nix-build')

_INSTALL_EXPRESSION = 'install-cli.nix'


def libexec_dir() -> Path:
	if path := os.environ.get('DISKOINSTALL_LIBEXEC_DIR'):
		return Path(path)

	return Path(__file__).parent.parent / 'nix'


@dataclass(frozen=True)
class ArtifactSet:
	system_path: Path
	partition_script: Path

	@classmethod
	def from_output(cls, output: str) -> 'ArtifactSet':
		paths = [line.strip() for line in output.splitlines() if line.strip()]

		if len(paths) != 2:
			raise BuildError(f'Expected exactly 2 build outputs, got {len(paths)}: {paths}')

		return cls(system_path=Path(paths[0]), partition_script=Path(paths[1]))


class NixBuilder:
	def __init__(self, expression: Path | None = None) -> None:
		self.expression = expression or libexec_dir() / _INSTALL_EXPRESSION
		self.binary = self._locate_builder()

	@staticmethod
	def _locate_builder() -> str:
		for name in _BUILDERS:
			if path := which(name):
				return path

		raise BuildError(f'None of {", ".join(_BUILDERS)} could be found in PATH')

	def build_command(self, config: RunConfig, mountpoint: Path) -> list[str]:
		cmd = [
			self.binary,
			str(self.expression),
			'--no-out-link',
			'--impure',
			'--argstr', 'flake', config.flake,
			'--argstr', 'flakeAttr', config.flake_attr,
			'--argstr', 'rootMountPoint', str(mountpoint),
			'--arg', 'writeEfiBootEntries', json.dumps(config.write_efi_boot_entries),
			'--arg', 'diskMappings', serialize_attrs(config.disk_mappings),
			'--argstr', 'systemConfig', config.system_config,
			'-A', 'installToplevel',
			'-A', config.mode.disko_attr(),
		]

		for name, value in config.nix_options:
			cmd += ['--option', name, value]

		if config.show_trace:
			cmd.append('--show-trace')

		return cmd

	def build(self, config: RunConfig, mountpoint: Path) -> ArtifactSet:
		info(f'Building {config.flake}#{config.flake_attr} ({config.mode.value} mode)')

		try:
			# only stdout carries the store paths, build logs stay on the terminal
			worker = SysCommand(self.build_command(config, mountpoint), capture_stderr=False)
		except (SysCallError, RequirementError) as err:
			raise BuildError(f'Building the installation artifacts failed: {err}') from err

		artifacts = ArtifactSet.from_output(worker.decode())
		debug(f'System closure: {artifacts.system_path}, partition script: {artifacts.partition_script}')

		return artifacts
