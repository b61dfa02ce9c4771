"""Builds and spawns UI objects. UIConstructor and GlobalPanels live here."""

import json
import textwrap

from rich.json import JSON
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from explain.config import ConfigState

# Label colours for -conversation
ROLE_STYLES = {
    "system": "bold red",
    "user": "bold blue",
    "assistant": "bold green",
}


class UIConstructor:
    """Constructs and returns various UI objects"""

    def error_panel_constructor(self, error: str, exception: str) -> Panel:
        return Panel(
            Text(exception),
            title=Text(f"❌ {error}", style="bold red"),
            title_align="left",
            border_style="red",
            expand=False,
        )

    def config_constructor(self, state: ConfigState) -> JSON:
        return JSON(json.dumps(state.to_dict(), ensure_ascii=False), indent=2)

    def message_constructor(self, message: dict) -> Text:
        role = message["role"]
        return Text.assemble(
            (f"[{role}]", ROLE_STYLES.get(role, "bold")),
            "\n",
            message["content"],
            "\n",
        )

    def seed_notice_constructor(self, system_prompt: str) -> Text:
        return Text.assemble(("system: ", ROLE_STYLES["system"]), system_prompt)

    def invalid_model_constructor(self, identifier: str, listing: str) -> Text:
        return Text.assemble(
            ("Invalid model ", "bold red"),
            (identifier, "bold"),
            (", please provide one of the following:\n", "bold red"),
            listing,
        )

    def missing_config_constructor(self, path: str) -> Markdown:
        return Markdown(
            textwrap.dedent(f"""
            Failed to read the configuration file at `{path}`.

            Please run `explain -init` to create a new configuration file.
            """)
        )

    def init_done_constructor(self) -> Markdown:
        return Markdown(
            textwrap.dedent("""
            All good, you can start using explain now!

            Example usage: `$ explain what is the meaning of life`
            """)
        )


class GlobalPanels:
    """Global panel spawner"""

    def __init__(self, console, ui: UIConstructor | None = None):
        self.console = console
        self.ui: UIConstructor = ui or UIConstructor()

    def spawn_error_panel(self, error: str, exception: str):
        """Error panel template, used by main()"""
        self.console.print(self.ui.error_panel_constructor(error, exception))
        self.console.print()

    def spawn_config(self, state: ConfigState):
        self.console.print(self.ui.config_constructor(state))

    def spawn_conversation(self, state: ConfigState):
        """Prints every stored turn under a role-coloured label."""
        for message in state.conversation:
            self.console.print(self.ui.message_constructor(message))

    def spawn_seed_notice(self, system_prompt: str):
        self.console.print(self.ui.seed_notice_constructor(system_prompt))

    def spawn_invalid_model(self, identifier: str, listing: str):
        self.console.print(self.ui.invalid_model_constructor(identifier, listing))

    def spawn_missing_config(self, path: str):
        self.console.print(self.ui.missing_config_constructor(path))

    def spawn_init_done(self):
        self.console.print()
        self.console.print(self.ui.init_done_constructor())

    def spawn_usage(self, usage: str):
        self.console.print("[yellow]Please provide a prompt[/yellow]\n")
        self.console.print(usage, markup=False, highlight=False)

    def write_fragment(self, fragment: str):
        """Stream sink: raw text, no markup, no trailing newline."""
        self.console.out(fragment, end="", highlight=False)
        self.console.file.flush()

    def end_stream(self):
        self.console.out("")
