"""Tests for the lixqa-client CLI."""

from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from lixqa_client.cli import app
from lixqa_client.codegen.codegen import GenerationResult
from lixqa_client.config import GeneratorConfig
from lixqa_client.exceptions import ConfigurationError, SchemaLoadError


@pytest.fixture
def runner():
    """Fixture providing CLI test runner."""
    return CliRunner()


@pytest.fixture
def sample_config():
    return GeneratorConfig(url='http://api.test', output='./client.py', format=False)


def codegen_returning(mock_codegen_class) -> MagicMock:
    instance = MagicMock()
    instance.generate.return_value = GenerationResult(
        routes=3, methods=5, output='./client.py'
    )
    mock_codegen_class.return_value = instance
    return instance


class TestGenerateCommand:
    @patch('lixqa_client.cli.get_config')
    @patch('lixqa_client.cli.Codegen')
    def test_generate_without_config_file(
        self, mock_codegen_class, mock_get_config, runner, sample_config
    ):
        mock_get_config.return_value = sample_config
        instance = codegen_returning(mock_codegen_class)

        result = runner.invoke(app, ['generate'])

        assert result.exit_code == 0
        mock_get_config.assert_called_once_with(None)
        mock_codegen_class.assert_called_once_with(sample_config)
        instance.generate.assert_called_once()
        assert 'Generated files:' in result.output
        assert '3 routes, 5 methods' in result.output

    @patch('lixqa_client.cli.get_config')
    @patch('lixqa_client.cli.Codegen')
    def test_generate_with_config_file(
        self, mock_codegen_class, mock_get_config, runner, sample_config
    ):
        mock_get_config.return_value = sample_config
        codegen_returning(mock_codegen_class)

        result = runner.invoke(app, ['generate', '-c', 'custom.yaml'])

        assert result.exit_code == 0
        mock_get_config.assert_called_once_with('custom.yaml')

    @patch('lixqa_client.cli.get_config')
    @patch('lixqa_client.cli.Codegen')
    def test_flags_override_config(
        self, mock_codegen_class, mock_get_config, runner, sample_config
    ):
        mock_get_config.return_value = sample_config
        codegen_returning(mock_codegen_class)

        result = runner.invoke(
            app,
            [
                'generate',
                '--url',
                'http://other.test',
                '-o',
                './other.py',
                '--separate-types',
                '--use-types-v2',
                '--with-schemas',
            ],
        )

        assert result.exit_code == 0
        settings = mock_codegen_class.call_args.args[0]
        assert settings.url == 'http://other.test'
        assert settings.output == './other.py'
        assert settings.separate_types and settings.use_types_v2 and settings.with_schemas
        # untouched values come from the loaded configuration
        assert settings.format is False

    @patch('lixqa_client.cli.get_config')
    @patch('lixqa_client.cli.Codegen')
    def test_v2_without_separate_types_fails(
        self, mock_codegen_class, mock_get_config, runner, sample_config
    ):
        mock_get_config.return_value = sample_config

        result = runner.invoke(app, ['generate', '--use-types-v2'])

        assert result.exit_code == 1
        assert 'Error:' in result.output
        assert 'separate_types' in result.output
        mock_codegen_class.assert_not_called()

    @patch('lixqa_client.cli.get_config')
    def test_generate_config_error(self, mock_get_config, runner):
        mock_get_config.side_effect = ConfigurationError('configuration file not found')

        result = runner.invoke(app, ['generate'])

        assert result.exit_code == 1
        assert 'Error:' in result.output
        assert 'configuration file not found' in result.output

    @patch('lixqa_client.cli.get_config')
    @patch('lixqa_client.cli.Codegen')
    def test_generate_load_error(
        self, mock_codegen_class, mock_get_config, runner, sample_config
    ):
        mock_get_config.return_value = sample_config
        instance = MagicMock()
        instance.generate.side_effect = SchemaLoadError('http://api.test')
        mock_codegen_class.return_value = instance

        result = runner.invoke(app, ['generate'])

        assert result.exit_code == 1
        assert 'Failed to load schema' in result.output


class TestVersionCommand:
    @patch('lixqa_client.__version__', '1.2.3')
    def test_version(self, runner):
        result = runner.invoke(app, ['version'])

        assert result.exit_code == 0
        assert 'lixqa-client version: 1.2.3' in result.output
