"""
Tests for the CLI interface.
"""
import os
import tempfile
from unittest.mock import patch, MagicMock

import pytest
from typer.testing import CliRunner

from utility_bill.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from utility_bill.core.billing import CostCalculationError, InvalidDateRangeError
from utility_bill.core.usage_fetcher import UsageFetchError

runner = CliRunner()


@pytest.fixture
def mock_service():
    """Mock the billing service factory."""
    with patch('utility_bill.cli.main.create_billing_service') as mock_factory:
        service = MagicMock()
        mock_factory.return_value = service
        yield service


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield os.path.join(temp_dir, "test.db")


class TestCostCommand:
    """Test the cost command."""

    def test_cost_prints_total(self, mock_service):
        mock_service.calculate_cost.return_value = 37.8

        result = runner.invoke(app, ["cost", "123", "--start", "2023-07-01", "--end", "2023-09-30"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Total cost: $37.80" in result.output
        args, _ = mock_service.calculate_cost.call_args
        assert args[0] == 123

    def test_cost_invalid_range(self, mock_service):
        mock_service.calculate_cost.side_effect = InvalidDateRangeError("Start date must be in the past")

        result = runner.invoke(app, ["cost", "123", "--start", "2100-01-01", "--end", "2100-02-01"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Start date must be in the past" in result.output

    def test_cost_reports_failed_stage(self, mock_service):
        mock_service.calculate_cost.side_effect = CostCalculationError(
            "usage", UsageFetchError("Error fetching Ausgrid data")
        )

        result = runner.invoke(app, ["cost", "123", "--start", "2023-07-01", "--end", "2023-09-30"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error (usage)" in result.output
        assert "Could not fetch usage data" in result.output

    def test_cost_rejects_malformed_date(self, mock_service):
        result = runner.invoke(app, ["cost", "123", "--start", "July", "--end", "2023-09-30"])

        assert result.exit_code != EXIT_CODE_PASS
        mock_service.calculate_cost.assert_not_called()

    def test_cost_missing_config_file(self, mock_service):
        result = runner.invoke(app, [
            "cost", "123", "--start", "2023-07-01", "--end", "2023-09-30",
            "--config", "/nonexistent/billing.yaml"
        ])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Configuration error" in result.output

    def test_cost_malformed_config_file(self, mock_service, tmp_path):
        config_path = tmp_path / "billing.yaml"
        config_path.write_text("retry: [unclosed", encoding="utf-8")

        result = runner.invoke(app, [
            "cost", "123", "--start", "2023-07-01", "--end", "2023-09-30",
            "--config", str(config_path)
        ])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Configuration error" in result.output
        mock_service.calculate_cost.assert_not_called()


class TestInitAndRates:
    """Test database initialization and tariff inspection."""

    def test_init_creates_database(self, db_path):
        result = runner.invoke(app, ["init", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Database initialized successfully" in result.output
        assert os.path.exists(db_path)

    def test_init_with_demo_data_then_rates(self, db_path):
        result = runner.invoke(app, ["init", "--db", db_path, "--demo"])
        assert result.exit_code == EXIT_CODE_PASS

        result = runner.invoke(app, ["rates", "123", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Tariffs for account 123" in result.output
        assert "off-peak" in result.output
        assert "5%" in result.output

    def test_rates_for_unknown_account(self, db_path):
        runner.invoke(app, ["init", "--db", db_path])

        result = runner.invoke(app, ["rates", "999", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No tariffs found for account 999" in result.output

    def test_rates_without_schema_fails(self, db_path):
        result = runner.invoke(app, ["rates", "123", "--db", db_path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error reading tariffs" in result.output

    def test_no_command_prints_help_hint(self):
        result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Use --help" in result.output
