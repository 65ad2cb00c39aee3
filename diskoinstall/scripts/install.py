import json
import shlex

from diskoinstall.lib.args import RunConfig
from diskoinstall.lib.build import ArtifactSet, NixBuilder
from diskoinstall.lib.installer import Installer, installer_command
from diskoinstall.lib.mountpoint import MountPoint
from diskoinstall.lib.output import debug, info


def _print_plan(artifacts: ArtifactSet, installer: Installer) -> None:
	print(f'Would run: {artifacts.partition_script}')
	print(f'Would run: {shlex.join(installer_command(artifacts.system_path, installer.target))}')


def perform_installation(config: RunConfig, builder: NixBuilder | None = None) -> None:
	"""
	Builds the system and partition script for ``config`` and installs it
	onto the configured disks. The temporary mount point is removed again
	however this returns, including when a step raises or a termination
	signal arrives.
	"""
	debug(f'Run configuration: {json.dumps(config.json())}')

	builder = builder or NixBuilder()

	with MountPoint() as mountpoint:
		artifacts = builder.build(config, mountpoint.path)

		with Installer(artifacts, mountpoint.path) as installation:
			if config.dry_run:
				_print_plan(artifacts, installation)
				return

			installation.perform(config.extra_files)

	info(f'Installation of {config.flake}#{config.flake_attr} finished')
