import os
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest
from pytest import MonkeyPatch

from diskoinstall.lib import output
from diskoinstall.lib.mountpoint import MountPoint


def write_executable(path: Path, content: str) -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(content)
	path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
	return path


@pytest.fixture(autouse=True)
def log_dir(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	path = tmp_path / 'log'
	monkeypatch.setattr(output.logger, '_path', path)
	return path


@pytest.fixture(autouse=True)
def temp_dir(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	path = tmp_path / 'tmp'
	path.mkdir()
	monkeypatch.setattr(tempfile, 'tempdir', str(path))
	return path


@pytest.fixture
def bin_dir(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	path = tmp_path / 'bin'
	path.mkdir()
	monkeypatch.setenv('PATH', f'{path}{os.pathsep}{os.environ.get("PATH", "")}')
	return path


@pytest.fixture
def flake_dir(tmp_path: Path) -> Path:
	path = tmp_path / 'flake'
	path.mkdir()
	(path / 'flake.nix').write_text('{ outputs = _: { }; }\n')
	return path


@dataclass
class FakeTools:
	"""
	Shell stand-ins for nix-build, nixos-install and umount that record
	how they were called below ``calls``.
	"""
	bin_dir: Path
	calls: Path
	store: Path

	@property
	def system_path(self) -> Path:
		return self.store / 'system'

	@property
	def partition_script(self) -> Path:
		return self.store / 'partition-script'

	def write(self, partition_rc: int = 0, install_rc: int = 0, partition_body: str = '') -> None:
		# the partition script is generated at build time, like the real one,
		# and marks the mount point as mounted
		nix_build = f"""#!/bin/sh
printf '%s\\n' "$@" > {self.calls}/nix-build.args
root=""
while [ $# -gt 0 ]; do
	if [ "$1" = "--argstr" ] && [ "$2" = "rootMountPoint" ]; then
		root="$3"
	fi
	shift
done
cat > {self.partition_script} <<SCRIPT
#!/bin/sh
touch {self.calls}/partition.ran
touch "$root/.mounted"
{partition_body}
exit {partition_rc}
SCRIPT
chmod +x {self.partition_script}
echo {self.system_path}
echo {self.partition_script}
"""
		write_executable(self.bin_dir / 'nix-build', nix_build)
		write_executable(self.bin_dir / 'nom-build', nix_build)

		write_executable(
			self.bin_dir / 'nixos-install',
			f"""#!/bin/sh
echo "$*" >> {self.calls}/nixos-install.calls
root=""
while [ $# -gt 0 ]; do
	if [ "$1" = "--root" ]; then
		root="$2"
	fi
	shift
done
cp -a "$root" {self.calls}/installed-root
exit {install_rc}
""",
		)

		write_executable(
			self.bin_dir / 'umount',
			f"""#!/bin/sh
echo "$*" >> {self.calls}/umount.calls
ls -A "$2" > {self.calls}/umount.contents
find "$2" -mindepth 1 -delete
""",
		)

	def build_args(self) -> list[str]:
		return (self.calls / 'nix-build.args').read_text().splitlines()

	def build_arg(self, name: str) -> str:
		args = self.build_args()
		return args[args.index(name) + 1]

	def mountpoint(self) -> Path:
		return Path(self.build_arg('rootMountPoint'))

	def installer_calls(self) -> list[list[str]]:
		calls_file = self.calls / 'nixos-install.calls'
		if not calls_file.exists():
			return []
		return [line.split() for line in calls_file.read_text().splitlines()]

	def partition_ran(self) -> bool:
		return (self.calls / 'partition.ran').exists()

	def contents_at_unmount(self) -> list[str]:
		return (self.calls / 'umount.contents').read_text().split()


@pytest.fixture
def fake_tools(tmp_path: Path, bin_dir: Path, monkeypatch: MonkeyPatch) -> FakeTools:
	calls = tmp_path / 'calls'
	calls.mkdir()
	store = tmp_path / 'store'
	(store / 'system').mkdir(parents=True)

	tools = FakeTools(bin_dir=bin_dir, calls=calls, store=store)
	tools.write()

	# nothing is really mounted during tests, the partition script leaves a marker instead
	monkeypatch.setattr(MountPoint, 'is_mounted', lambda self: (self.path / '.mounted').exists())
	monkeypatch.setattr('os.geteuid', lambda: 0)

	return tools
