"""NixOS installer - format disks with disko and install a flake."""

import os
import sys
import textwrap
import traceback

from .lib.args import ConfigHandler
from .lib.exceptions import ConfigError, InstallerError, PrivilegeError, Terminated
from .lib.output import error, logger, warn
from .scripts.install import perform_installation


def _check_privileges() -> None:
	if os.geteuid() != 0:
		raise PrivilegeError('diskoinstall requires root privileges to run. See --help for more.')


def run(argv: list[str]) -> int:
	if '--help' in argv or '-h' in argv:
		sys.stdout.write(ConfigHandler.help_text())
		return 0

	handler = ConfigHandler(argv)

	if handler.args.version:
		print(handler.get_version())
		return 0

	config = handler.build_config()

	_check_privileges()

	perform_installation(config)

	return 0


def _error_message(exc: Exception) -> None:
	err = ''.join(traceback.format_exception(exc))
	error(err)

	text = textwrap.dedent(
		f"""\
		diskoinstall experienced the above error.
		The log file "{logger.path}" holds the commands that were run and their output.
		"""
	)
	warn(text)


def main(argv: list[str] | None = None) -> int:
	if argv is None:
		argv = sys.argv[1:]

	if not argv:
		sys.stderr.write(ConfigHandler.help_text())
		return 1

	try:
		return run(argv)
	except ConfigError as err:
		sys.stderr.write(ConfigHandler.usage())
		error(str(err), log_file=False)
	except PrivilegeError as err:
		error(str(err), log_file=False)
	except InstallerError as err:
		error(str(err))
	except Terminated as err:
		error(str(err))
		return 128 + err.signum
	except KeyboardInterrupt:
		error('Interrupted')
		return 130
	except Exception as exc:
		_error_message(exc)

	return 1


if __name__ == '__main__':
	sys.exit(main())
