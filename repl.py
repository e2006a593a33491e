import asyncio
import sys
from pathlib import Path

from roux.roux_config import RouxConfig, load_config
from roux.roux_printer import Printer
from roux.roux_runtime import Runtime

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def print_side_effects(result):
    """Echo recorded output to stdout and diagnostics to stderr."""
    for effect in result.side_effects:
        topics = effect.get('topics')
        if topics == ['stdout']:
            print(effect.get('message', ''))
        elif topics in (['stderr'], ['warning']):
            print(effect.get('message', ''), file=sys.stderr)

def parse_args(argv):
    """Returns (config, script path or None) from `[--config FILE] [SCRIPT]`."""
    config = RouxConfig()
    script = None
    args = list(argv)
    while args:
        arg = args.pop(0)
        if arg == "--config":
            if not args:
                print("Error: --config needs a file", file=sys.stderr)
                raise SystemExit(2)
            config = load_config(args.pop(0))
        elif not arg.startswith("-"):
            script = arg
    return config, script

async def run_script_file(file_path: str, config: RouxConfig = None):
    """Run a Roux script file non-interactively and exit with appropriate status."""
    runtime = Runtime(config=config)
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = runtime.run(source)
    print_side_effects(result)
    if result.status == 'error':
        raise SystemExit(65 if runtime.reporter.had_error else 70)

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    config, script = parse_args(sys.argv[1:])
    if script is not None:
        await run_script_file(script, config)
        return

    print("Roux REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runtime = Runtime(config=config)
    printer = Printer()

    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            # Statements end in ';' or '}'; anything else is shown as a value.
            if line.endswith((";", "}")):
                result = runtime.run(line)
            else:
                result = runtime.evaluate(line)

            print_side_effects(result)
            if result.status == 'error':
                if not result.side_effects:
                    print(result.format_error(), file=sys.stderr)
                runtime.reset_error_system()
                continue

            if line.endswith((";", "}")):
                continue
            print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
