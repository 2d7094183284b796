"""
Shell, environment and process builtins.

Commands run through the platform shell (`sh -c`, or `cmd /C` on Windows)
and block the interpreter until they finish.
"""
import os
import platform
import shutil
import subprocess
import sys

from shik.shik_errors import CustomError
from shik.shik_runtime import StdLibModule, shik_native, expect_string


def _shell_argv(cmd: str):
    if sys.platform.startswith("win"):
        return ["cmd", "/C", cmd]
    return ["sh", "-c", cmd]


def run_command(cmd: str, *, capture: bool = True) -> subprocess.CompletedProcess:
    out = subprocess.PIPE if capture else subprocess.DEVNULL
    try:
        return subprocess.run(_shell_argv(cmd), stdout=out, stderr=out)
    except (OSError, ValueError) as e:
        raise CustomError("ShellError", f"shell command failed: {e}") from None


def _decode(data) -> str:
    return (data or b"").decode("utf-8", errors="replace")


_ARCH_NAMES = {"amd64": "x86_64", "arm64": "aarch64"}


class ShellLib(StdLibModule):

    # --- Running commands ---

    @shik_native("shell")
    def _shell(self, cmd):
        return _decode(run_command(expect_string(cmd)).stdout)

    @shik_native("shell.code")
    def _code(self, cmd):
        return float(run_command(expect_string(cmd)).returncode)

    @shik_native("shell.full")
    def _full(self, cmd):
        proc = run_command(expect_string(cmd))
        return {
            "stdout": _decode(proc.stdout),
            "stderr": _decode(proc.stderr),
            "code": float(proc.returncode),
            "ok": proc.returncode == 0,
        }

    @shik_native("shell.try")
    def _try(self, cmd):
        cmd = expect_string(cmd)
        try:
            proc = run_command(cmd)
        except CustomError:
            return None
        return _decode(proc.stdout) if proc.returncode == 0 else None

    @shik_native("shell.ok")
    def _ok(self, cmd):
        cmd = expect_string(cmd)
        try:
            return run_command(cmd, capture=False).returncode == 0
        except CustomError:
            return False

    @shik_native("shell.lines")
    def _lines(self, cmd):
        return _decode(run_command(expect_string(cmd)).stdout).splitlines()

    # --- Environment variables ---

    @shik_native("shell.env")
    def _env(self, name): return os.environ.get(expect_string(name))

    @shik_native("shell.env.set")
    def _env_set(self, name, value):
        name, value = expect_string(name), expect_string(value)
        try:
            os.environ[name] = value
        except (OSError, ValueError) as e:
            raise CustomError("ShellError", f"cannot set environment variable {name!r}: {e}") from None
        return None

    @shik_native("shell.env.remove")
    def _env_remove(self, name):
        os.environ.pop(expect_string(name), None)
        return None

    @shik_native("shell.env.all")
    def _env_all(self): return dict(os.environ)

    # --- Working directory ---

    @shik_native("shell.cwd")
    def _cwd(self): return os.getcwd()

    @shik_native("shell.cd")
    def _cd(self, path):
        path = expect_string(path)
        try:
            os.chdir(os.path.expanduser(path))
        except (OSError, ValueError) as e:
            raise CustomError("ShellError", f"cannot change directory to '{path}': {e}") from None
        return None

    @shik_native("shell.home")
    def _home(self):
        home = os.environ.get("HOME") or os.environ.get("USERPROFILE")
        if not home:
            raise CustomError("ShellError", "cannot determine home directory")
        return home

    # --- Path lookups ---

    @shik_native("shell.which")
    def _which(self, name): return shutil.which(expect_string(name))

    @shik_native("shell.has")
    def _has(self, name): return shutil.which(expect_string(name)) is not None

    # --- Process information ---

    @shik_native("process.pid", "proccess.pid")
    def _pid(self): return float(os.getpid())

    @shik_native("shell.args")
    def _shell_args(self):
        """Full command line: interpreter, script, then script arguments."""
        head = ["shik"] + ([self.runner.script_file] if self.runner.script_file else [])
        return head + list(self.runner.argv)

    @shik_native("process.args")
    def _process_args(self): return list(self.runner.argv)

    @shik_native("process.file")
    def _process_file(self): return self.runner.script_file

    @shik_native("shell.os")
    def _os(self):
        name = platform.system().lower()
        return "macos" if name == "darwin" else name

    @shik_native("shell.arch")
    def _arch(self):
        machine = platform.machine().lower()
        return _ARCH_NAMES.get(machine, machine)
