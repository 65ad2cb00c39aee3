import signal
import tempfile
from pathlib import Path
from types import FrameType, TracebackType
from typing import Any, Self

from .exceptions import RequirementError, SysCallError, Terminated
from .general import SysCommand
from .output import debug, error

# SIGINT already unwinds as KeyboardInterrupt
_TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class MountPoint:
	"""
	Owns the temporary root directory of one installation.

	``acquire()`` creates the directory and hooks the termination signals,
	``release()`` unmounts whatever is mounted below it and removes it.
	Used as a context manager the release happens on every way out of the
	``with`` block: normal completion, an exception or a signal. The
	termination signals are ignored while ``release()`` runs.
	"""

	def __init__(self, prefix: str = 'diskoinstall-', parent: Path | None = None) -> None:
		self._prefix = prefix
		self._parent = parent
		self._path: Path | None = None
		self._released = False
		self._previous_handlers: dict[int, Any] = {}

	@property
	def path(self) -> Path:
		if self._path is None:
			raise RuntimeError('Mount point has not been acquired')
		return self._path

	def acquire(self) -> Path:
		if self._path is not None:
			raise RuntimeError(f'Mount point already acquired at {self._path}')

		self._path = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._parent))
		# some filesystems refuse to be mounted on a directory only root may enter
		self._path.chmod(0o755)

		for signum in _TERMINATION_SIGNALS:
			self._previous_handlers[signum] = signal.signal(signum, self._raise_terminated)

		debug(f'Created mount point {self._path}')
		return self._path

	def release(self) -> None:
		if self._path is None or self._released:
			return

		self._released = True

		for signum in _TERMINATION_SIGNALS:
			signal.signal(signum, signal.SIG_IGN)

		try:
			self._remove()
		finally:
			self._restore_signal_handlers()

	def _remove(self) -> None:
		path = self.path

		if self.is_mounted():
			debug(f'Unmounting {path}')
			SysCommand(['umount', '-R', str(path)])

		try:
			path.rmdir()
		except FileNotFoundError:
			debug(f'Mount point {path} was already removed')
			return

		debug(f'Removed mount point {path}')

	def is_mounted(self) -> bool:
		return self.path.is_mount()

	def _raise_terminated(self, signum: int, frame: FrameType | None) -> None:
		raise Terminated(signum)

	def _restore_signal_handlers(self) -> None:
		for signum, handler in self._previous_handlers.items():
			signal.signal(signum, handler)

		self._previous_handlers.clear()

	def __enter__(self) -> Self:
		self.acquire()
		return self

	def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> None:
		try:
			self.release()
		except (SysCallError, RequirementError, OSError) as err:
			# an exception already in flight takes precedence
			if exc_type is None:
				raise

			error(f'Failed to clean up mount point {self._path}: {err}')
