"""
Unit tests for the command line (rotator/cli.py).
"""

import json
from unittest.mock import patch

from click.testing import CliRunner

from rotator.cli import main
from rotator.controller import RunOutcome
from rotator.exceptions import CatalogUnavailable, TargetBackupFailure


class TestRunCommand:
    """Test `backup-rotator run`."""

    @patch('rotator.cli.execute_rotation')
    def test_run_success_exit_code(self, mock_execute, config_file):
        mock_execute.return_value = RunOutcome(host='web1')

        result = CliRunner().invoke(main, ['run', '--config', str(config_file)])

        assert result.exit_code == 0
        config = mock_execute.call_args[0][0]
        assert config.hostname == 'web1'

    @patch('rotator.cli.execute_rotation')
    def test_run_failure_exit_code(self, mock_execute, config_file):
        outcome = RunOutcome(host='web1')
        outcome.fatal = TargetBackupFailure("1 backup target(s) failed")
        mock_execute.return_value = outcome

        result = CliRunner().invoke(main, ['run', '--config', str(config_file)])

        assert result.exit_code == 1

    @patch('rotator.cli.execute_rotation')
    def test_verbose_override(self, mock_execute, config_file):
        mock_execute.return_value = RunOutcome(host='web1')

        CliRunner().invoke(main, ['run', '--config', str(config_file), '--verbose', '2'])

        assert mock_execute.call_args[0][0].verbose == 2

    @patch('rotator.cli.execute_rotation')
    def test_missing_config_exits_without_running(self, mock_execute, tmp_path):
        result = CliRunner().invoke(main, ['run', '--config', str(tmp_path / 'none.conf')])

        assert result.exit_code == 1
        mock_execute.assert_not_called()


class TestPlanCommand:
    """Test `backup-rotator plan`."""

    @patch('rotator.cli.plan_rotation')
    def test_plan_text(self, mock_plan, config_file):
        mock_plan.return_value = {
            'host': 'web1',
            'tier': 'monthly',
            'prefix': 'web1-monthly-2024-02-15_03:00:00',
            'catalog_size': 26,
            'archives': ['web1-monthly-2024-02-15_03:00:00-etc'],
            'to_delete': ['web1-monthly-2023-01-01_03:00:00-etc'],
        }

        result = CliRunner().invoke(main, ['plan', '--config', str(config_file)])

        assert result.exit_code == 0
        assert 'Tier:    monthly' in result.output
        assert 'delete web1-monthly-2023-01-01_03:00:00-etc' in result.output

    @patch('rotator.cli.plan_rotation')
    def test_plan_json(self, mock_plan, config_file):
        mock_plan.return_value = {'host': 'web1', 'tier': 'daily', 'prefix': 'p',
                                  'catalog_size': 0, 'archives': [], 'to_delete': []}

        result = CliRunner().invoke(main, ['plan', '--config', str(config_file), '--json'])

        assert json.loads(result.output)['tier'] == 'daily'

    @patch('rotator.cli.plan_rotation')
    def test_plan_catalog_failure(self, mock_plan, config_file):
        mock_plan.side_effect = CatalogUnavailable("Could not list archives")

        result = CliRunner().invoke(main, ['plan', '--config', str(config_file)])

        assert result.exit_code == 1
