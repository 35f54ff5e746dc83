# =============================================================================
# tests/unit/test_errors.py
# Unit Tests for the exception hierarchy and handlers
# =============================================================================

from unittest.mock import patch

import pytest

from shop_core.errors import (
    ConfigInvalidError,
    LocalParseError,
    OrderNotFoundError,
    PrintShopError,
    RemoteCallError,
    RemoteConstructError,
    handle_error,
    safe_execute,
)
from shop_core.services.base_service import ServiceResult


class TestExceptions:

    @pytest.mark.parametrize("error,code", [
        (ConfigInvalidError("bad"), "CONFIG_001"),
        (RemoteConstructError("bad"), "REMOTE_001"),
        (RemoteCallError("bad"), "REMOTE_002"),
        (LocalParseError("bad"), "LOCAL_001"),
        (OrderNotFoundError("o-1"), "ORDER_001"),
    ])
    def test_codes(self, error, code):
        assert isinstance(error, PrintShopError)
        assert error.code == code

    def test_str_includes_code_and_details(self):
        error = RemoteCallError("insert failed", table="orders", operation="insert")
        assert str(error) == "[REMOTE_002] insert failed | Details: {'table': 'orders', 'operation': 'insert'}"

    def test_to_dict(self):
        data = OrderNotFoundError("o-1").to_dict()

        assert data["error_type"] == "OrderNotFoundError"
        assert data["details"] == {"order_id": "o-1"}
        assert data["recoverable"] is True


class TestServiceResult:

    def test_from_domain_exception(self):
        result = ServiceResult.from_exception(OrderNotFoundError("o-1"))

        assert not result
        assert result.error_code == "ORDER_001"
        assert result.metadata == {"order_id": "o-1"}

    def test_from_other_exception(self):
        result = ServiceResult.from_exception(ValueError("nope"))
        assert result.error_code == "EXCEPTION"

    def test_ok_is_truthy(self):
        assert ServiceResult.ok([1])


class TestHandlers:

    def test_handle_error_shows_message(self):
        with patch("shop_core.errors.handlers.st") as mock_st:
            handle_error(RemoteCallError("insert failed"), user_message="Could not save order")

        mock_st.error.assert_called_once_with("Error: Could not save order")

    def test_non_recoverable_message(self):
        with patch("shop_core.errors.handlers.st") as mock_st:
            handle_error(LocalParseError("corrupt", recoverable=False))

        assert "Critical Error" in mock_st.error.call_args[0][0]

    def test_handle_error_quiet(self, caplog):
        with patch("shop_core.errors.handlers.st") as mock_st:
            handle_error(ValueError("boom"), show_user_message=False)

        mock_st.error.assert_not_called()
        assert "[UNKNOWN] boom" in caplog.text

    def test_safe_execute_returns_value(self):
        assert safe_execute(int, "42", default=0) == 42

    def test_safe_execute_returns_default(self):
        with patch("shop_core.errors.handlers.st") as mock_st:
            assert safe_execute(int, "forty-two", default=0) == 0

        mock_st.error.assert_not_called()
