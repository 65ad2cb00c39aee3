from collections.abc import Mapping
from pathlib import Path
from types import TracebackType

from .build import ArtifactSet
from .exceptions import CopyError, InstallError, PartitionError, RequirementError, SysCallError
from .general import SysCommand
from .output import info, logger, warn


def installer_command(system_path: Path, target: Path) -> list[str]:
	return [
		'nixos-install',
		'--no-root-password',
		'--system', str(system_path),
		'--root', str(target),
	]


class Installer:
	def __init__(self, artifacts: ArtifactSet, target: Path) -> None:
		"""
		`Installer()` runs the destructive part of an installation against
		``target``, a directory the caller owns and cleans up.
		"""
		self.artifacts = artifacts
		self.target = target

	def __enter__(self) -> 'Installer':
		return self

	def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> bool | None:
		if exc_type is not None:
			warn(f'[!] A log file has been created here: {logger.path}')

		# Return None to propagate the exception
		return None

	def _relative_target(self, destination: str) -> Path:
		# destinations are absolute paths on the installed system
		path = Path(destination)
		if path.is_absolute():
			path = path.relative_to('/')

		return self.target / path

	def run_partition_script(self) -> None:
		info(f'Running partition script {self.artifacts.partition_script}')

		try:
			SysCommand([str(self.artifacts.partition_script)], peek_output=True)
		except (SysCallError, RequirementError) as err:
			raise PartitionError(f'Partition script {self.artifacts.partition_script} failed: {err}') from err

	def copy_extra_files(self, extra_files: Mapping[str, str]) -> None:
		"""
		Copies every source onto its destination below the target root.
		Stops at the first entry that fails, files copied before it stay in place.
		"""
		for source, destination in extra_files.items():
			target = self._relative_target(destination)
			info(f'Copying {source} to {target}')

			try:
				target.parent.mkdir(parents=True, exist_ok=True)
				SysCommand(['cp', '-ar', source, str(target)])
			except (SysCallError, RequirementError, OSError) as err:
				raise CopyError(f'Could not copy {source} to {target}: {err}') from err

	def install_system(self) -> None:
		info(f'Installing {self.artifacts.system_path} to {self.target}')

		try:
			SysCommand(installer_command(self.artifacts.system_path, self.target), peek_output=True)
		except (SysCallError, RequirementError) as err:
			raise InstallError(f'nixos-install failed: {err}') from err

	def perform(self, extra_files: Mapping[str, str]) -> None:
		self.run_partition_script()
		self.copy_extra_files(extra_files)
		self.install_system()
