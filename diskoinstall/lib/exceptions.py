class RequirementError(Exception):
	pass


class SysCallError(Exception):
	def __init__(self, message: str, exit_code: int | None = None, worker_log: bytes = b'') -> None:
		super().__init__(message)
		self.message = message
		self.exit_code = exit_code
		self.worker_log = worker_log


class InstallerError(Exception):
	"""
	Base class for every failure that ends a run.
	"""


class ConfigError(InstallerError):
	pass


class PrivilegeError(InstallerError):
	pass


class BuildError(InstallerError):
	pass


class PartitionError(InstallerError):
	pass


class CopyError(InstallerError):
	pass


class InstallError(InstallerError):
	pass


class Terminated(Exception):
	"""
	Raised from a signal handler so that the stack unwinds through
	any cleanup scopes before the process exits.
	"""

	def __init__(self, signum: int) -> None:
		super().__init__(f'Received signal {signum}')
		self.signum = signum
