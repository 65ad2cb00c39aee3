from __future__ import annotations

import os
import shlex
import stat
import subprocess
import sys
import time
from shutil import which
from typing import override

from .exceptions import RequirementError, SysCallError
from .output import debug, logger


def locate_binary(name: str) -> str:
	if path := which(name):
		return path
	raise RequirementError(f'Binary {name} does not exist.')


class SysCommand:
	"""
	Runs ``cmd`` to completion as soon as it is constructed.

	Standard output is always captured into the trace log. With
	``peek_output`` every line is also echoed to the console while the
	command runs. Standard error is either folded into the trace log
	(the default) or, with ``capture_stderr=False``, left attached to
	the terminal, which is what callers parsing stdout want.

	A non-zero exit raises :class:`SysCallError`.
	"""

	def __init__(
		self,
		cmd: str | list[str],
		peek_output: bool = False,
		capture_stderr: bool = True,
	):
		if isinstance(cmd, str):
			cmd = shlex.split(cmd)
		else:
			cmd = list(cmd)

		if cmd and not cmd[0].startswith(('/', './')):
			cmd[0] = locate_binary(cmd[0])

		self.cmd = cmd
		self.peek_output = peek_output
		self.capture_stderr = capture_stderr
		# define the standard locale for command outputs
		self.environment_vars = {'LC_ALL': 'C'}

		self.exit_code: int | None = None
		self.started: float | None = None
		self.ended: float | None = None
		self._trace_log = b''

		self.execute()

	@override
	def __repr__(self) -> str:
		return self.decode('UTF-8', errors='backslashreplace') or ''

	def execute(self) -> None:
		_log_cmd(self.cmd)

		self.started = time.time()

		with subprocess.Popen(
			self.cmd,
			stdin=subprocess.DEVNULL,
			stdout=subprocess.PIPE,
			stderr=subprocess.STDOUT if self.capture_stderr else None,
			env={**os.environ, **self.environment_vars},
		) as proc:
			assert proc.stdout is not None

			for line in proc.stdout:
				self._trace_log += line
				self._peak(line)

			self.exit_code = proc.wait()

		self.ended = time.time()

		if self.exit_code != 0:
			raise SysCallError(
				f'{self.cmd} exited with abnormal exit code [{self.exit_code}]: {self.decode()[-500:]}',
				self.exit_code,
				worker_log=self._trace_log,
			)

	def _peak(self, output: bytes) -> None:
		if not self.peek_output:
			return

		sys.stdout.write(output.decode('UTF-8', errors='backslashreplace'))
		sys.stdout.flush()

	def decode(self, encoding: str = 'utf-8', errors: str = 'backslashreplace', strip: bool = True) -> str:
		val = self._trace_log.decode(encoding, errors=errors)

		if strip:
			return val.strip()
		return val


def _log_cmd(cmd: list[str]) -> None:
	debug(f'Executing: {shlex.join(cmd)}')

	history_logfile = logger.directory / 'cmd_history.txt'

	change_perm = False
	if history_logfile.exists() is False:
		change_perm = True

	try:
		with history_logfile.open('a') as cmd_log:
			cmd_log.write(f'{time.time()} {cmd}\n')

		if change_perm:
			history_logfile.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)
	except (PermissionError, FileNotFoundError):
		# If history_logfile does not exist, ignore the error
		pass
