"""NixOS installer - format disks with disko and install a flake."""

from .lib.args import ConfigHandler, InstallMode, RunConfig
from .lib.build import ArtifactSet, NixBuilder
from .lib.exceptions import (
	BuildError,
	ConfigError,
	CopyError,
	InstallError,
	InstallerError,
	PartitionError,
	PrivilegeError,
	RequirementError,
	SysCallError,
	Terminated,
)
from .lib.general import SysCommand
from .lib.installer import Installer
from .lib.mountpoint import MountPoint
from .lib.nix import deserialize_attrs, serialize_attrs
from .lib.output import debug, error, info, log, warn
from .main import main
from .scripts.install import perform_installation

__all__ = [
	'ArtifactSet',
	'BuildError',
	'ConfigError',
	'ConfigHandler',
	'CopyError',
	'InstallError',
	'InstallMode',
	'Installer',
	'InstallerError',
	'MountPoint',
	'NixBuilder',
	'PartitionError',
	'PrivilegeError',
	'RequirementError',
	'RunConfig',
	'SysCallError',
	'SysCommand',
	'Terminated',
	'debug',
	'deserialize_attrs',
	'error',
	'info',
	'log',
	'main',
	'perform_installation',
	'serialize_attrs',
	'warn',
]
