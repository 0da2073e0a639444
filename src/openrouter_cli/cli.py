"""
Main CLI interface for openrouter-cli

Provides the command-line interface using the Click framework with rich
terminal output.
"""

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional, Tuple

import click
from dotenv import find_dotenv, load_dotenv

from . import __version__
from .core.api import ChatRequest, Message, OpenRouterClient
from .core.config import Config, ConfigOverrides, resolve
from .core.errors import (
    APIError,
    NoAPIKeyError,
    NoInputError,
    OpenRouterCLIError,
    TransportError,
)
from .core.models import filter_models
from .ui.formatting import FORMAT_JSON, FORMAT_RAW, RichFormatter
from .utils.input import MODE_COMBINE, MODE_SIMPLE, resolve_input
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_FAILURE = 1
EXIT_SETUP_REQUIRED = 3


@dataclass
class GlobalOptions:
    """Options shared by every command"""
    config_path: Optional[Path] = None
    api_key: Optional[str] = None
    debug: bool = False

    def load_config(self, use_environment: bool = True, use_overrides: bool = True) -> Config:
        overrides = ConfigOverrides(api_key=self.api_key) if use_overrides else None
        environ = None if use_environment else {}
        return resolve(overrides=overrides, config_path=self.config_path, environ=environ)


@dataclass
class ChatOptions:
    prompt: Tuple[str, ...] = ()
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    use_stdin: bool = False
    raw: bool = False
    json: bool = False


@dataclass
class ListOptions:
    name_filter: Optional[str] = None
    json: bool = False


def fail(formatter: RichFormatter, error: Exception, config_path: Optional[Path] = None) -> NoReturn:
    """Report an error by category and exit"""
    if isinstance(error, NoAPIKeyError):
        formatter.display_error("No API key found")
        formatter.display_setup_instructions(str(config_path) if config_path else None)
        sys.exit(EXIT_SETUP_REQUIRED)

    if isinstance(error, APIError):
        formatter.display_api_error(error)
    elif isinstance(error, TransportError):
        formatter.display_error(str(error), "The request did not complete; check your network and api_base_url.")
    else:
        formatter.display_error(str(error))

    logger.debug("Command failed", error_class=type(error).__name__, error=str(error))
    sys.exit(EXIT_FAILURE)


def build_chat_request(config: Config, options: ChatOptions, prompt: str) -> ChatRequest:
    """Fill in per-invocation values, falling back to configured defaults"""
    return ChatRequest(
        model=options.model or config.default_model,
        messages=[Message(role="user", content=prompt)],
        temperature=(
            options.temperature if options.temperature is not None else config.default_temperature
        ),
        max_tokens=options.max_tokens if options.max_tokens is not None else config.default_max_tokens,
    )


def select_output_format(config: Config, options: ChatOptions) -> str:
    if options.json:
        return FORMAT_JSON
    if options.raw:
        return FORMAT_RAW
    return config.output_format


async def chat_command(config: Config, options: ChatOptions, formatter: RichFormatter):
    """Send a prompt and display the response"""
    config.require_api_key()

    mode = MODE_COMBINE if options.use_stdin else MODE_SIMPLE
    prompt = resolve_input(options.prompt, mode)
    if not prompt.strip():
        raise NoInputError("prompt cannot be empty")

    request = build_chat_request(config, options, prompt)
    logger.debug("Sending request", base_url=config.api_base_url, model=request.model)

    async with OpenRouterClient(config) as api_client:
        response = await api_client.chat_completion(request)

    formatter.display_chat_response(response, select_output_format(config, options))


async def list_models_command(config: Config, options: ListOptions, formatter: RichFormatter):
    """List available models, minus the unavailable ones"""
    config.require_api_key()

    logger.debug("Fetching models", base_url=config.api_base_url)
    async with OpenRouterClient(config) as api_client:
        models = await api_client.get_models()

    models = filter_models(models, options.name_filter, config.unavailable_models)
    if not models:
        formatter.display_error("No models found")
        if options.name_filter:
            formatter.display_info("Try searching without filters or with different keywords")
        return

    formatter.display_models(models, as_json=options.json)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Path to config file')
@click.option('--api-key', help='OpenRouter API key (overrides config)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(__version__, prog_name="openrouter")
@click.pass_context
def main(ctx, config_path: Optional[Path], api_key: Optional[str], verbose: bool, debug: bool):
    """OpenRouter CLI - Access 400+ AI models from your terminal

    \b
    Get started:
      openrouter chat "Hello, world!"
      openrouter list
      echo "Tell me a joke" | openrouter chat
    """
    log_level = "DEBUG" if debug else ("INFO" if verbose else "WARNING")
    setup_logging(log_level)

    # Variables from a .env file in or above the working directory, without overriding real ones
    load_dotenv(find_dotenv(usecwd=True))

    ctx.obj = GlobalOptions(config_path=config_path, api_key=api_key, debug=debug)


@main.command()
@click.argument('prompt', nargs=-1)
@click.option('--model', '-m', help='Model to use (e.g., openai/gpt-4)')
@click.option('--temperature', '-t', type=click.FloatRange(0.0, 2.0),
              help='Temperature for response generation (0.0-2.0)')
@click.option('--max-tokens', type=click.IntRange(min=0), help='Maximum tokens in response')
@click.option('--stdin', 'use_stdin', is_flag=True,
              help="Combine argument with piped input (cat file.txt | openrouter chat --stdin 'Analyze:')")
@click.option('--raw', is_flag=True, help='Output only the response text (no formatting)')
@click.option('--json', 'json_output', is_flag=True, help='Output full API response as JSON')
@click.pass_obj
def chat(opts: GlobalOptions, prompt, model, temperature, max_tokens, use_stdin, raw, json_output):
    """Send a chat completion request

    \b
    Input options:
      openrouter chat "What is Go?"                        # Argument only
      echo "Explain quantum computing" | openrouter chat   # Pipe only
      cat file.txt | openrouter chat --stdin "Analyze:"    # Combine both
    """
    formatter = RichFormatter()
    options = ChatOptions(
        prompt=prompt,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        use_stdin=use_stdin,
        raw=raw,
        json=json_output,
    )

    try:
        config = opts.load_config()
        asyncio.run(chat_command(config, options, formatter))
    except OpenRouterCLIError as e:
        fail(formatter, e, opts.config_path)


@main.command(name="list")
@click.option('--filter', 'name_filter', help='Filter models by name or ID')
@click.option('--json', 'json_output', is_flag=True, help='Output as JSON')
@click.pass_obj
def list_models(opts: GlobalOptions, name_filter: Optional[str], json_output: bool):
    """List available models with pricing and capabilities

    \b
    Examples:
      openrouter list --filter claude
      openrouter list --json | jq '.[] | .id'
    """
    formatter = RichFormatter()
    options = ListOptions(name_filter=name_filter, json=json_output)

    try:
        config = opts.load_config()
        asyncio.run(list_models_command(config, options, formatter))
    except OpenRouterCLIError as e:
        fail(formatter, e, opts.config_path)


@main.group(name="config")
def config_group():
    """Manage configuration settings

    \b
    Examples:
      openrouter config get api_key
      openrouter config set default_model openai/gpt-4
      openrouter config add-unavailable qwen/model:free
      openrouter config remove-unavailable qwen/model:free
      openrouter config list-unavailable
    """


@config_group.command(name="get")
@click.argument('key')
@click.pass_obj
def config_get(opts: GlobalOptions, key: str):
    """Get a configuration value"""
    formatter = RichFormatter()
    try:
        config = opts.load_config(use_overrides=False)
        click.echo(config.get_value(key))
    except OpenRouterCLIError as e:
        fail(formatter, e)


@config_group.command(name="set")
@click.argument('key')
@click.argument('value')
@click.pass_obj
def config_set(opts: GlobalOptions, key: str, value: str):
    """Set a configuration value"""
    formatter = RichFormatter()
    try:
        # Only the persisted layer is written back, never the environment key
        config = opts.load_config(use_environment=False, use_overrides=False)
        config.set_value(key, value)
    except OpenRouterCLIError as e:
        fail(formatter, e)

    shown = config.get_value(key) if key == "api_key" else value
    formatter.display_success(f"Set {key} = {shown}")


@config_group.command(name="show")
@click.pass_obj
def config_show(opts: GlobalOptions):
    """Show all configuration settings"""
    formatter = RichFormatter()
    try:
        config = opts.load_config(use_overrides=False)
    except OpenRouterCLIError as e:
        fail(formatter, e)
    formatter.display_config(config)


@config_group.command(name="add-unavailable")
@click.argument('model_id')
@click.pass_obj
def config_add_unavailable(opts: GlobalOptions, model_id: str):
    """Mark a model as unavailable (won't appear in list)"""
    formatter = RichFormatter()
    try:
        config = opts.load_config(use_environment=False, use_overrides=False)
        config.add_unavailable_model(model_id)
    except OpenRouterCLIError as e:
        fail(formatter, e)
    formatter.display_success(f"Marked {model_id} as unavailable")


@config_group.command(name="remove-unavailable")
@click.argument('model_id')
@click.pass_obj
def config_remove_unavailable(opts: GlobalOptions, model_id: str):
    """Remove a model from the unavailable list"""
    formatter = RichFormatter()
    try:
        config = opts.load_config(use_environment=False, use_overrides=False)
        config.remove_unavailable_model(model_id)
    except OpenRouterCLIError as e:
        fail(formatter, e)
    formatter.display_success(f"Removed {model_id} from unavailable list")


@config_group.command(name="list-unavailable")
@click.pass_obj
def config_list_unavailable(opts: GlobalOptions):
    """List all models marked as unavailable"""
    formatter = RichFormatter()
    try:
        config = opts.load_config(use_overrides=False)
    except OpenRouterCLIError as e:
        fail(formatter, e)
    formatter.display_unavailable_models(config.unavailable_models)


if __name__ == "__main__":
    main()
