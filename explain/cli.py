"""Command-line surface: flag dispatch, first-run setup and the exchange itself."""

import argparse
import logging
import sys

from keyring import set_password
from keyring.errors import KeyringError
from prompt_toolkit import prompt
from prompt_toolkit.formatted_text import HTML

from explain import __version__
from explain.config import ConfigStore, default_state
from explain.conversation import ConversationManager
from explain.errors import (
    ConfigCorruptError,
    ConfigNotFoundError,
    EmptyPromptError,
    ExplainError,
    InvalidModelError,
    PersistenceError,
    StreamError,
)
from explain.globals import (
    CONSOLE,
    KEYRING_SERVICE,
    USER_NAME,
    config_path,
    init_logger,
    log_exception,
    request_timeout,
    retrieve_key,
    setup_keyring_backend,
)
from explain.models import ModelSelector
from explain.provider import Provider
from explain.stream import StreamAccumulator
from explain.ui import GlobalPanels

logger = logging.getLogger(__name__)

# Error panel titles
ERROR_TITLES = {
    ConfigCorruptError: "CORRUPT CONFIG",
    PersistenceError: "PERSISTENCE ERROR",
    StreamError: "API ERROR",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="explain",
        description="Ask a language model from the terminal. "
        "The conversation carries over between runs.",
        epilog="Example: explain what is the meaning of life",
        allow_abbrev=False,
    )
    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "-clear", action="store_true", help="Clear the conversation history"
    )
    actions.add_argument(
        "-model", metavar="ID", help="Change the model used for the conversation"
    )
    actions.add_argument(
        "-init", action="store_true", help="Initialize the configuration file"
    )
    actions.add_argument(
        "-config", action="store_true", help="Show the current configuration"
    )
    actions.add_argument(
        "-conversation", action="store_true", help="Show the current conversation"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    # Flags are only read before the first prompt word
    parser.add_argument(
        "prompt", nargs=argparse.REMAINDER, help="Prompt words, joined by spaces"
    )
    return parser


class ExplainCLI:
    """Runs one invocation: load, act on the flags, save"""

    def __init__(self, store: ConfigStore, panels: GlobalPanels, usage: str = ""):
        self.store = store
        self.panels = panels
        self.usage = usage
        self.manager = ConversationManager(store)
        self.selector = ModelSelector()

    # <~~HELPERS~~>
    def _prompt_wrapper(self, prefix, allow_empty=False, **kwargs) -> str | None:
        """Prompt_toolkit wrapper for validating input."""
        try:
            user_input = prompt(prefix, **kwargs)
            stripped = user_input.strip()
            if not stripped and not allow_empty:
                self.panels.console.print("[dim]No input detected.[/dim]\n")
                return None
            return stripped
        except (KeyboardInterrupt, EOFError):
            self.panels.console.print("[dim]Canceled.[/dim]\n")
            return None

    # <~~COMMANDS~~>
    def init(self):
        """Writes a default state file, then optionally asks for an API key."""
        state = default_state()
        self.store.save(state)
        self.panels.console.print(
            f"Saved configuration file to [cyan]{self.store.path}[/cyan]"
        )

        choice = self._prompt_wrapper(
            HTML(
                "Do you want to add an api key? (<seagreen>Y</seagreen>/<ansired>n</ansired>): "
            ),
            allow_empty=True,
        )
        if choice is None or choice.lower() in ("n", "no"):
            return

        new_key = self._prompt_wrapper(
            HTML("API key<seagreen>:</seagreen> "), is_password=True
        )
        if not new_key:
            return

        where = self._prompt_wrapper(
            HTML(
                "Store it in the OS keyring instead of the config file? (<seagreen>y</seagreen>/<ansired>N</ansired>): "
            ),
            allow_empty=True,
        )
        if where and where.lower() in ("y", "yes"):
            try:
                set_password(KEYRING_SERVICE, USER_NAME, new_key)
                self.panels.console.print("[green]API key stored in the OS keyring.[/green]")
                self.panels.spawn_init_done()
                return
            except (KeyringError, ValueError, RuntimeError, OSError) as e:
                log_exception(e, "Error in init()")
                self.panels.spawn_error_panel(
                    "KEYRING ERROR",
                    f"Could not store the key in the keyring, keeping it in the config file.\n{e}",
                )

        state.api_key = new_key
        self.store.save(state)
        self.panels.spawn_init_done()

    def clear(self):
        state = self.store.load()
        self.manager.clear(state)
        self.panels.console.print("[green]Conversation cleared.[/green]")

    def change_model(self, identifier: str):
        """Validates the identifier before anything is loaded or written."""
        model = self.selector.validate(identifier)
        state = self.store.load()
        state.model = model
        self.manager.commit(state)
        self.panels.console.print(f"[green]Model set to:[/green] {model}")

    def show_config(self):
        self.panels.spawn_config(self.store.load())

    def show_conversation(self):
        self.panels.spawn_conversation(self.store.load())

    def ask(self, words: list[str]):
        """
        One full exchange.\n
        Nothing is written unless the stream finishes; a failed stream leaves
        the state file exactly as it was loaded.
        """
        state = self.store.load()
        text = " ".join(words).strip()

        seeded = self.manager.start(state)
        try:
            self.manager.append_user(state, text)
        except EmptyPromptError:
            self.panels.spawn_usage(self.usage)
            raise

        api_key = retrieve_key(state.api_key)
        if not api_key:
            raise ExplainError(
                "no API key configured. Run `explain -init` or set OPENAI_API_KEY.",
                "resolve API key",
            )
        if seeded:
            self.panels.spawn_seed_notice(self.manager.system_prompt)

        model = self.selector.resolve(state)
        provider = Provider(api_key, timeout=request_timeout())
        accumulator = StreamAccumulator(self.panels.write_fragment)
        try:
            fragments = provider.open_stream(model, state.conversation)
            reply = accumulator.drain(fragments)
        finally:
            self.panels.end_stream()

        self.manager.append_assistant(state, reply)
        self.manager.commit(state)
        logger.info("Exchange saved, %d messages", len(state.conversation))

    def dispatch(self, args: argparse.Namespace):
        if args.init:
            self.init()
        elif args.clear:
            self.clear()
        elif args.model is not None:
            self.change_model(args.model)
        elif args.config:
            self.show_config()
        elif args.conversation:
            self.show_conversation()
        else:
            self.ask(args.prompt)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args, leading = parser.parse_known_args(argv)
    # Dash-words ahead of the prompt, as in `explain -la means what`
    args.prompt = leading + args.prompt

    init_logger()
    setup_keyring_backend()

    panels = GlobalPanels(CONSOLE)
    cli = ExplainCLI(ConfigStore(config_path()), panels, parser.format_help())
    try:
        cli.dispatch(args)
    except ConfigNotFoundError:
        panels.spawn_missing_config(cli.store.path)
        return 1
    except EmptyPromptError:
        return 1
    except InvalidModelError as e:
        panels.spawn_invalid_model(e.identifier, cli.selector.pretty_models())
        return 1
    except ExplainError as e:
        log_exception(e, "Error in main()")
        panels.spawn_error_panel(ERROR_TITLES.get(type(e), "ERROR"), str(e))
        return 1
    except KeyboardInterrupt:
        CONSOLE.print()
        return 130
    return 0


def run():
    sys.exit(main())
