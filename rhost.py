import asyncio
import sys
from pathlib import Path

from rhost.rhost_config import ConfigError, configure_logging, load_config
from rhost.rhost_datatypes import Failed, HostError
from rhost.rhost_render import TextRenderer
from rhost.rhost_session import DemoSession

USAGE = "usage: rhost.py [--config FILE] [PANEL [SCRIPT]]"

HELP = """\
commands:
  panels             list panels
  panel ID           switch to a panel
  run                run the current panel
  set NAME VALUE     change a parameter (recomputes after a pause)
  regen              regenerate the panel's data and run
  reset              restore the panel's default program
  load FILE          use FILE as the panel's program
  show               print the program the panel would submit
  exit               quit"""


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


def make_session(config) -> DemoSession:
    titles = {}
    session = DemoSession(config, renderer=TextRenderer(titles=titles))
    titles.update({pid: p.spec.title for pid, p in session.pipelines.items()})
    return session


def parse_args(argv):
    config_path = None
    rest = []
    it = iter(argv)
    for arg in it:
        if arg == "--config":
            config_path = next(it, None)
            if config_path is None:
                raise SystemExit(USAGE)
        elif arg.startswith("-"):
            raise SystemExit(USAGE)
        else:
            rest.append(arg)
    if len(rest) > 2:
        raise SystemExit(USAGE)
    return config_path, rest


async def run_panel_once(session: DemoSession, panel_id: str, script: str = None):
    """Run one panel non-interactively and exit with appropriate status."""
    if script is not None:
        p = Path(script)
        try:
            session.set_code(panel_id, p.read_text(encoding="utf-8"))
        except FileNotFoundError:
            print(f"Error: file not found: {script}", file=sys.stderr)
            raise SystemExit(1)
    session.pipeline(panel_id)
    if not await session.boot(run_panels=False):
        print("Error: evaluator could not be loaded", file=sys.stderr)
        raise SystemExit(1)
    published = await session.run(panel_id)
    if isinstance(published, Failed):
        raise SystemExit(1)


async def shell(session: DemoSession):
    print("rhost panel shell")
    print("Type 'help' for commands, 'exit' or Ctrl+D to quit.")
    if not await session.boot():
        print("Evaluator not loaded; runs will fail until it is available.", file=sys.stderr)
    current = session.panel_ids[0]

    while True:
        try:
            raw = await ainput(f"{current}> ")
            if raw == "":
                raise EOFError
            words = raw.split()
            if not words:
                continue
            cmd, args = words[0], words[1:]

            if cmd == "exit":
                break
            elif cmd == "help":
                print(HELP)
            elif cmd == "panels":
                for pid in session.panel_ids:
                    mark = "*" if pid == current else " "
                    print(f"{mark} {pid:<12} {session.pipeline(pid).spec.title}")
            elif cmd == "panel" and len(args) == 1:
                session.pipeline(args[0])
                current = args[0]
            elif cmd == "run":
                await session.run(current)
            elif cmd == "regen":
                await session.regenerate(current)
            elif cmd == "set" and len(args) == 2:
                session.set_parameter(current, args[0], float(args[1]))
            elif cmd == "reset":
                session.reset(current)
            elif cmd == "load" and len(args) == 1:
                session.set_code(current, Path(args[0]).read_text(encoding="utf-8"))
            elif cmd == "show":
                print(session.pipeline(current).program())
            else:
                print(f"Unknown command: {raw.strip()} (try 'help')", file=sys.stderr)

        except EOFError:
            print("\nExiting.")
            break
        except (KeyError, ValueError, OSError, HostError) as e:
            print(f"Error: {e}", file=sys.stderr)

    session.close()
    await session.drain()


async def main():
    """Run a panel once when one is named, otherwise start the interactive shell."""
    config_path, rest = parse_args(sys.argv[1:])
    try:
        config = load_config(config_path)
        configure_logging(config.log_level)
        session = make_session(config)
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    if rest:
        try:
            await run_panel_once(session, rest[0], rest[1] if len(rest) > 1 else None)
        except KeyError as e:
            print(f"Error: {e.args[0]}", file=sys.stderr)
            raise SystemExit(2)
        return
    await shell(session)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
