import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
import json
import logging

from ..config.manager import ConfigManager
from ..nlp.errors import DucktapeError
from ..nlp.processor import NLPProcessor

console = Console()
config_manager = None

# Command completion
COMMANDS = [
    "schedule", "create", "remind me to", "take a note",
    "today", "tomorrow", "tonight", "at", "in", "every", "until",
    "with", "invite", "zoom", "meeting", "event", "appointment"
]


def get_config() -> ConfigManager:
    global config_manager
    if config_manager is None:
        config_manager = ConfigManager()
    return config_manager


def get_session():
    """Get prompt session with command completion"""
    completer = WordCompleter(COMMANDS, ignore_case=True)
    return PromptSession(completer=completer)


def check_configuration(config: ConfigManager) -> bool:
    """Check and validate configuration"""
    if not config.validate():
        if click.confirm("Would you like to run the setup wizard?", default=True):
            config.setup_wizard()
            return config.validate()
        return False
    return True


def init_processor(config: ConfigManager, offline: bool = False) -> NLPProcessor:
    if offline:
        config.config['features']['enable_llm'] = False
    return NLPProcessor(config)


@click.group()
@click.option('--config', '-c', help='Path to .env file')
@click.option('--debug', is_flag=True, help='Log pipeline decisions')
def cli(config, debug):
    """Ducktape - turn plain English into ducktape commands"""
    global config_manager
    config_manager = ConfigManager(config) if config else get_config()
    level = 'DEBUG' if debug or config_manager.get('development.debug') else config_manager.get('development.log_level', 'INFO')
    logging.basicConfig(level=level)


@cli.command()
def setup():
    """Run the setup wizard"""
    get_config().setup_wizard()
    console.print("\nTo start using ducktape, try: ducktape-nlp chat -i")


@cli.command()
@click.argument('text', nargs=-1, required=True)
@click.option('--offline', is_flag=True, help='Skip the LLM and parse locally')
@click.option('--json', 'as_json', is_flag=True, help='Print the parsed command as JSON')
def parse(text, offline, as_json):
    """Parse a single request and print the command"""
    config = get_config()
    if not offline and not check_configuration(config):
        raise SystemExit(1)

    nlp = init_processor(config, offline)
    if not process_command(" ".join(text), nlp, as_json):
        raise SystemExit(1)


@cli.command()
@click.option('--interactive', '-i', is_flag=True, help='Start interactive mode')
@click.option('--offline', is_flag=True, help='Skip the LLM and parse locally')
def chat(interactive, offline):
    """Chat with the command parser"""
    config = get_config()
    if not offline and not check_configuration(config):
        return

    nlp = init_processor(config, offline)

    if interactive:
        session = get_session()
        console.print(Panel.fit(
            "🦆 [bold blue]Ducktape[/bold blue] - natural language to commands\n"
            "Type 'help' for examples or 'exit' to quit",
            title="Welcome"
        ))

        while True:
            try:
                command = session.prompt("\nducktape> ")

                if command.lower() in ['exit', 'quit']:
                    break
                elif command.lower() == 'help':
                    show_help()
                elif command.strip():
                    process_command(command, nlp)
            except KeyboardInterrupt:
                continue
            except EOFError:
                break
    else:
        command = click.prompt("What would you like to schedule?")
        process_command(command, nlp)


@cli.command()
@click.option('--host', default='127.0.0.1', help='Interface to bind')
@click.option('--port', default=3000, type=int, help='Port to listen on')
def serve(host, port):
    """Run the HTTP and WebSocket API"""
    import uvicorn

    console.print(f"[bold blue]Serving ducktape API on http://{host}:{port}[/bold blue]")
    uvicorn.run("ducktape.api.main:app", host=host, port=port,
                log_level=get_config().get('development.log_level', 'INFO').lower())


def process_command(command: str, nlp: NLPProcessor, as_json: bool = False) -> bool:
    """Parse a request and print the result; returns False on failure"""
    try:
        result = nlp.parse_command_sync(command)
    except DucktapeError as e:
        console.print(f"[red]Error: {e}[/red]")
        if e.hint:
            console.print(f"[yellow]{e.hint}[/yellow]")
        return False

    if not result.recognized:
        console.print("[red]Sorry, I couldn't tell whether that is an event, a reminder or a note.[/red]")
        return False

    if as_json:
        console.print_json(json.dumps({"command": result.rendered, "data": result.command.to_dict(),
                                       "hints": result.hints}))
        return True

    show_command(result)
    return True


def show_command(result):
    """Print a parsed command as a table"""
    command = result.command
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Type", command.family.value)
    table.add_row("Title", command.title or "")
    table.add_row("Date", command.date.isoformat() if command.date else "today")
    if command.start_time:
        table.add_row("Time", f"{command.start_time} - {command.end_time}")
    table.add_row("Target", command.target or "")
    if command.invitees:
        table.add_row("Contacts", ", ".join(command.invitees))
    if command.emails:
        table.add_row("Emails", ", ".join(command.emails))
    if command.location:
        table.add_row("Location", command.location)
    if command.recurrence:
        table.add_row("Repeats", command.recurrence.frequency.value)
    if command.is_virtual_meeting:
        table.add_row("Zoom", "yes")

    console.print(f"\n[green]✓[/green] {NLPProcessor.summarize(command)}")
    console.print(table)
    console.print(result.rendered, style="bold", markup=False, highlight=False)
    for hint in result.hints:
        console.print(f"[yellow]{hint}[/yellow]")


def show_help():
    """Show example requests"""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Example")
    table.add_column("Produces", style="dim")

    table.add_row("create an event called Standup tonight at 7pm", "calendar event today 19:00-20:00")
    table.add_row("schedule a zoom meeting tomorrow at 8am with Jane", "calendar event with --zoom and contacts")
    table.add_row("schedule team sync every 2 weeks until March 1 at 10am", "recurring calendar event")
    table.add_row("remind me to call Mom in 30 minutes", "reminder")
    table.add_row("take a note about the release plan", "note")

    console.print(table)


if __name__ == '__main__':
    cli()
