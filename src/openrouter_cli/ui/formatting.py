"""
Rich Formatting for openrouter-cli

Turns chat responses, model lists and errors into terminal output.
"""

import json
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text
import structlog

from ..core.api import ChatResponse, ModelInfo, Usage
from ..core.config import Config, get_config_path, mask_api_key
from ..core.errors import APIError, EmptyResponseError
from ..core.models import format_price

logger = structlog.get_logger(__name__)

FORMAT_PRETTY = "pretty"
FORMAT_RAW = "raw"
FORMAT_JSON = "json"


def extract_content(response: ChatResponse) -> str:
    """
    Return the text of the first choice. A response without choices is an
    EmptyResponseError; an envelope with no id and no model points at a
    rate limit or provider failure behind a 2xx status.
    """
    if not response.choices:
        if not response.id and not response.model:
            raise EmptyResponseError("no response from API (this may be a rate limit or provider error)")
        raise EmptyResponseError("no choices in response - model may be unavailable or rate-limited")

    return response.choices[0].message.content


def format_usage(usage: Usage) -> Optional[str]:
    """Usage summary line, or None when no tokens were reported"""
    if usage.total_tokens <= 0:
        return None
    return (
        f"Tokens used: {usage.total_tokens} "
        f"(prompt: {usage.prompt_tokens}, completion: {usage.completion_tokens})"
    )


def render_chat_response(response: ChatResponse, output_format: str = FORMAT_PRETTY) -> str:
    """Render a chat response as plain text in the requested format"""
    content = extract_content(response)

    if output_format == FORMAT_RAW:
        return content
    if output_format == FORMAT_JSON:
        return json.dumps(response.to_dict(), indent=2) + "\n"

    text = f"{content}\n"
    usage_line = format_usage(response.usage)
    if usage_line:
        text += f"\n{usage_line}\n"
    return text


def render_models_json(models: List[ModelInfo]) -> str:
    return json.dumps([m.to_dict() for m in models], indent=2) + "\n"


class RichFormatter:
    """
    Terminal formatter. Results go to stdout, diagnostics to stderr.
    """

    def __init__(self, console: Optional[Console] = None, err_console: Optional[Console] = None):
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def _print_plain(self, text: str):
        """Print text verbatim, bypassing rich markup and wrapping"""
        click.echo(text, nl=False, file=self.console.file)

    def display_chat_response(self, response: ChatResponse, output_format: str = FORMAT_PRETTY):
        """Display a chat response"""
        if output_format != FORMAT_PRETTY:
            self._print_plain(render_chat_response(response, output_format))
            return

        self._print_plain(extract_content(response) + "\n")
        usage_line = format_usage(response.usage)
        if usage_line:
            self.console.print()
            self.console.print(Text(usage_line, style="cyan"))

    def display_models(self, models: List[ModelInfo], as_json: bool = False):
        """Display a list of models as a table or JSON"""
        if as_json:
            self._print_plain(render_models_json(models))
            return

        table = Table(title="Available Models")
        table.add_column("Model ID", style="green", no_wrap=True)
        table.add_column("Context", justify="right")
        table.add_column("Pricing (prompt/completion)")
        table.add_column("Modality", style="cyan")

        for model in models:
            pricing = f"{format_price(model.pricing.prompt)} / {format_price(model.pricing.completion)}"
            table.add_row(
                Text(model.id),
                f"{model.context_length:,}",
                Text(pricing),
                Text(model.architecture.modality or "text"),
            )

        self.console.print(table)

    def display_config(self, config: Config):
        """Show all configuration settings"""
        table = Table(title="Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("API Key", mask_api_key(config.api_key))
        table.add_row("Default Model", config.default_model)
        table.add_row("Default Temperature", str(config.default_temperature))
        table.add_row("Default Max Tokens", str(config.default_max_tokens))
        table.add_row("Output Format", config.output_format)
        table.add_row("API Base URL", config.api_base_url)
        table.add_row("Timeout", f"{config.timeout} seconds")
        table.add_row(
            "Unavailable Models",
            ", ".join(config.unavailable_models) if config.unavailable_models else "(none)",
        )
        table.add_row("Config File", str(config.config_path))

        self.console.print(table)

    def display_unavailable_models(self, models: List[str]):
        if not models:
            self.console.print("No unavailable models configured.")
            return

        self.console.print("Unavailable models (filtered from 'openrouter list'):")
        for i, model_id in enumerate(models, 1):
            self.console.print(f"  {i}. {model_id}", markup=False, highlight=False)

    def display_success(self, message: str):
        self.console.print(Text(f"✓ {message}", style="green"))

    def display_info(self, message: str):
        self.err_console.print(Text(message, style="yellow"))

    def display_error(self, message: str, details: Optional[str] = None):
        """Display error message"""
        text = Text("Error: ", style="bold red")
        text.append(message)
        self.err_console.print(text)
        if details:
            self.err_console.print(Text(details, style="dim"))

    def display_api_error(self, error: APIError):
        """Display an error returned by the gateway"""
        text = Text("API Error: ", style="bold red")
        if error.type:
            text.append(f"{error.message} ({error.type}, HTTP {error.status_code})")
        else:
            text.append(f"{error.message} (HTTP {error.status_code})")
        self.err_console.print(text)

    def display_setup_instructions(self, config_path: Optional[str] = None):
        """Print API key setup instructions"""
        path = config_path or str(get_config_path())
        self.err_console.print()
        self.err_console.print(Text("To set up OpenRouter CLI:", style="yellow"))
        self.err_console.print()
        self.err_console.print("1. Get an API key from https://openrouter.ai", highlight=False)
        self.err_console.print("2. Set it using one of:")
        self.err_console.print(Text("   - Environment variable: ").append("export OPENROUTER_API_KEY=sk-...", style="cyan"))
        self.err_console.print(Text("   - Config command: ").append("openrouter config set api_key sk-...", style="cyan"))
        self.err_console.print(Text("   - Config file: ").append(path, style="cyan"))
        self.err_console.print()
