import logging
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from lixqa_client.codegen.codegen import Codegen
from lixqa_client.config import GeneratorConfig, get_config
from lixqa_client.exceptions import LixqaError

console = Console()
app = typer.Typer(
    name='lixqa-client',
    help='Generate typed Python clients from a Lixqa API route schema',
    no_args_is_help=True,
)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(message)s',
        datefmt='[%X]',
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _merge_options(config: GeneratorConfig, **overrides) -> GeneratorConfig:
    # Only flags given on the command line override the loaded configuration
    explicit = {key: value for key, value in overrides.items() if value is not None}
    if not explicit:
        return config
    return GeneratorConfig.model_validate({**config.model_dump(), **explicit})


@app.command()
def generate(
    url: Annotated[
        str | None,
        typer.Option('--url', '-u', help='Base URL of the API (or a local schema file)'),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option('--output', '-o', help='Path of the generated client module'),
    ] = None,
    format: Annotated[
        bool | None,
        typer.Option('--format/--no-format', help='Format the generated module'),
    ] = None,
    debug: Annotated[
        bool | None,
        typer.Option('--debug', '-d', help='Enable debug logging'),
    ] = None,
    separate_types: Annotated[
        bool | None,
        typer.Option('--separate-types', help='Emit one named type per route role'),
    ] = None,
    use_types_v2: Annotated[
        bool | None,
        typer.Option(
            '--use-types-v2', help='Emit a flat RouteTypeMap (requires --separate-types)'
        ),
    ] = None,
    with_schemas: Annotated[
        bool | None,
        typer.Option('--with-schemas', help='Emit a RouteSchemaMap of TypeAdapters'),
    ] = None,
    config: Annotated[
        str | None,
        typer.Option('--config', '-c', help='Path to configuration file (YAML)'),
    ] = None,
) -> None:
    """Generate a client module from a running API.

    If no config file is specified, will look for lixqa.yaml, lixqa.yml or a
    [tool.lixqa-client] table in pyproject.toml in the current directory, or
    use LIXQA_* environment variables.

    Examples:
        lixqa-client generate
        lixqa-client generate --url http://localhost:3000 -o ./client.py
        lixqa-client generate --separate-types --use-types-v2 --with-schemas
    """
    try:
        settings = _merge_options(
            get_config(config),
            url=url,
            output=output,
            format=format,
            debug=debug,
            separate_types=separate_types,
            use_types_v2=use_types_v2,
            with_schemas=with_schemas,
        )
        setup_logging(settings.debug)

        with Progress(
            SpinnerColumn(),
            TextColumn('[progress.description]{task.description}'),
            console=console,
        ) as progress:
            task = progress.add_task(
                f'Generating client for {settings.url} in {settings.output}...',
                total=None,
            )

            result = Codegen(settings).generate()

            progress.update(task, description='Code generation completed!')

        console.print('[dim]Generated files:[/dim]')
        console.print(f'  - {result.output}')
        console.print(
            f'[green]{result.routes} routes, {result.methods} methods[/green]'
        )

    except (LixqaError, ValidationError) as e:
        console.print(f'[red]Error:[/red] {str(e)}')
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show the version of lixqa-client."""
    from lixqa_client import __version__

    console.print(f'lixqa-client version: {__version__}')


if __name__ == '__main__':
    app()
