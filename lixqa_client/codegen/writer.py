"""Rendering, formatting and writing of the generated module.

This module turns the assembled AST statements into source code, checks that
the result compiles, optionally runs a formatter over it and writes it to the
output location.
"""

import ast
import logging
import subprocess
from pathlib import Path

from upath import UPath

from lixqa_client.exceptions import CodeGenerationError, OutputError

__all__ = ['ModuleWriter', 'format_source', 'render_module']

logger = logging.getLogger(__name__)


def render_module(body: list[ast.stmt], name: str = 'api_client') -> str:
    """Unparse module statements into source code and check it compiles.

    Args:
        body: Statements forming the module body.
        name: Module name, used in error messages.

    Returns:
        The module source, terminated by a newline.

    Raises:
        CodeGenerationError: If the AST cannot be unparsed or the result is
            not valid Python.
    """
    module = ast.Module(body=body, type_ignores=[])
    ast.fix_missing_locations(module)

    try:
        source = ast.unparse(module)
    except Exception as e:
        raise CodeGenerationError('Failed to unparse the generated AST', name, e) from e

    try:
        compile(source, f'{name}.py', 'exec')
    except SyntaxError as e:
        raise CodeGenerationError('Generated code has invalid syntax', name, e) from e

    return source + '\n'


def format_source(source: str) -> str:
    """Format source code using ruff or black if available.

    Args:
        source: The source code to format.

    Returns:
        Formatted source code, or the original if no formatter succeeded.
    """
    # Try ruff first
    try:
        result = subprocess.run(
            ['ruff', 'format', '-'],
            input=source,
            capture_output=True,
            text=True,
        )
        if result.returncode == 0:
            return result.stdout
    except (FileNotFoundError, subprocess.SubprocessError):
        pass

    # Try black
    try:
        import black

        return black.format_str(source, mode=black.Mode())
    except ImportError:
        logger.warning('No formatter available, writing unformatted code')
    except Exception as e:
        logger.warning(f'Formatting failed, writing unformatted code: {e}')

    return source


class ModuleWriter:
    """Writes generated module source to local or remote paths.

    Example:
        >>> writer = ModuleWriter(format_code=False)
        >>> source = writer.render(body)
        >>> writer.write(source, './generated/api_client.py')
    """

    def __init__(self, format_code: bool = True):
        """Initialize the writer.

        Args:
            format_code: Whether to format code with ruff/black before writing.
        """
        self.format_code = format_code

    def render(self, body: list[ast.stmt], name: str = 'api_client') -> str:
        source = render_module(body, name)
        if self.format_code:
            source = format_source(source)
        return source

    def write(self, source: str, path: UPath | Path | str) -> str:
        """Write ``source`` to ``path``, creating parent directories.

        Returns:
            The path that was written, as a string.

        Raises:
            OutputError: If the file or its directory cannot be written.
        """
        path = UPath(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(source, encoding='utf-8')
        except OSError as e:
            raise OutputError(str(path), cause=e) from e

        logger.debug(f'Wrote {len(source)} characters to {path}')
        return str(path)
