import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

DEFAULT_LOG_DIR = Path('/var/log/diskoinstall')


class Journald:
	@staticmethod
	def log(message: str, level: int = logging.DEBUG) -> None:
		try:
			import systemd.journal  # type: ignore[import-not-found]
		except ModuleNotFoundError:
			return None

		log_adapter = logging.getLogger('diskoinstall')

		if not log_adapter.handlers:
			log_ch = systemd.journal.JournalHandler(SYSLOG_IDENTIFIER='diskoinstall')
			log_ch.setFormatter(logging.Formatter('[%(levelname)s]: %(message)s'))
			log_adapter.addHandler(log_ch)
			log_adapter.setLevel(logging.DEBUG)

		log_adapter.log(level, message)


class Logger:
	def __init__(self, path: Path | None = None) -> None:
		if path is None:
			path = Path(os.environ.get('DISKOINSTALL_LOG_DIR', DEFAULT_LOG_DIR))

		self._path = path

	@property
	def path(self) -> Path:
		return self._path / 'install.log'

	@property
	def directory(self) -> Path:
		return self._path

	def _check_permissions(self) -> None:
		log_file = self.path

		try:
			self._path.mkdir(exist_ok=True, parents=True)
			log_file.touch(exist_ok=True)
		except PermissionError:
			# Fallback to creating the log file in the current folder
			self._path = Path('./').absolute()
			_print(f'Not enough permission to place log file at {log_file}, creating it in {self.path} instead', sys.stderr)

	def log(self, level: int, content: str) -> None:
		self._check_permissions()

		with self.path.open('a') as f:
			level_name = logging.getLevelName(level)
			f.write(f'[{_timestamp()}] - {level_name} - {content}\n')


logger = Logger()


def _supports_color(stream: TextIO) -> bool:
	return hasattr(stream, 'isatty') and stream.isatty()


_COLORS = {
	'red': '31',
	'green': '32',
	'yellow': '33',
	'white': '37',
	'gray': '38;5;246',
}


def _stylize_output(text: str, fg: str) -> str:
	return f'\033[{_COLORS[fg]}m{text}\033[0m'


def _timestamp() -> str:
	now = datetime.now(tz=UTC)
	return now.strftime('%Y-%m-%d %H:%M:%S')


def _print(text: str, stream: TextIO) -> None:
	stream.write(text + '\n')
	stream.flush()


def info(*msgs: str, level: int = logging.INFO, fg: str = 'white') -> None:
	log(*msgs, level=level, fg=fg)


def debug(*msgs: str, level: int = logging.DEBUG, fg: str = 'white') -> None:
	log(*msgs, level=level, fg=fg)


def error(*msgs: str, level: int = logging.ERROR, fg: str = 'red', log_file: bool = True) -> None:
	log(*msgs, level=level, fg=fg, log_file=log_file)


def warn(*msgs: str, level: int = logging.WARNING, fg: str = 'yellow') -> None:
	log(*msgs, level=level, fg=fg)


def log(*msgs: str, level: int = logging.INFO, fg: str = 'white', log_file: bool = True) -> None:
	text = ' '.join([str(x) for x in msgs])

	if log_file:
		logger.log(level, text)
	Journald.log(text, level=level)

	if level == logging.DEBUG:
		return

	# warnings and errors go to the error stream
	stream = sys.stderr if level >= logging.WARNING else sys.stdout

	if _supports_color(stream):
		text = _stylize_output(text, fg)

	_print(text, stream)
