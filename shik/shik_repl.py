import sys
from pathlib import Path

from shik.shik_runtime import ScriptRunner
from shik.shik_printer import Printer


def read_input(prompt: str) -> str:
    """Read one line from stdin; returns '' at end of input."""
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def run_script_file(file_path: str, args=None) -> int:
    """Run a SHIK script file non-interactively; returns the exit status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    runner = ScriptRunner(argv=args or [], script_file=file_path)
    result = runner.handle_script(source)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return 1
    return 0


def repl() -> int:
    print("SHIK REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner()
    printer = Printer()
    runner.source_dir = str(Path.cwd())

    while True:
        try:
            raw = read_input("> ")
        except KeyboardInterrupt:
            print()
            continue
        if raw == "":
            print("\nExiting.")
            break
        line = raw.strip()
        if not line:
            continue
        if line in ("exit", "quit"):
            break

        result = runner.handle_script(line)
        if result.status == 'error':
            print(result.format_error(), file=sys.stderr)
            continue
        if result.value is not None:
            print(printer.pformat(result.value))
    return 0


def main(argv=None) -> int:
    """Run a script file when provided, otherwise start the interactive REPL."""
    argv = sys.argv[1:] if argv is None else argv
    if argv and not argv[0].startswith("-"):
        return run_script_file(argv[0], argv[1:])
    return repl()


if __name__ == "__main__":
    sys.exit(main())
