"""Tests for error handling middleware."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from remotetest_mcp.errors import ConfigError
from remotetest_mcp.middleware.errors import ErrorHandlingMiddleware


@pytest.fixture
def error_middleware() -> ErrorHandlingMiddleware:
    """Create an error handling middleware instance."""
    return ErrorHandlingMiddleware(logger=MagicMock())


@pytest.fixture
def mock_context() -> MagicMock:
    """Create a mock middleware context."""
    context = MagicMock()
    context.method = "tools/call"
    context.message = MagicMock()
    context.message.name = "run_test"
    return context


@pytest.mark.asyncio
async def test_passes_through_success(
    error_middleware: ErrorHandlingMiddleware,
    mock_context: MagicMock,
) -> None:
    call_next = AsyncMock(return_value="success")

    result = await error_middleware.on_message(mock_context, call_next)

    assert result == "success"
    assert error_middleware.get_error_stats() == {}


@pytest.mark.asyncio
async def test_unexpected_error_logged_with_traceback(mock_context: MagicMock) -> None:
    """Unexpected exceptions are logged at ERROR and re-raised."""
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger, include_traceback=True)

    with pytest.raises(ValueError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=ValueError("bad")))

    mock_logger.error.assert_called_once()
    assert mock_logger.error.call_args.kwargs["exc_info"] is True
    mock_logger.warning.assert_not_called()


@pytest.mark.asyncio
async def test_pipeline_error_logged_as_warning(mock_context: MagicMock) -> None:
    """RemoteTestError subclasses are operational, not bugs."""
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger)

    with pytest.raises(ConfigError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=ConfigError("no project")))

    mock_logger.warning.assert_called_once()
    mock_logger.error.assert_not_called()


@pytest.mark.asyncio
async def test_tracks_and_resets_stats(
    error_middleware: ErrorHandlingMiddleware,
    mock_context: MagicMock,
) -> None:
    for exc in (ValueError("a"), ValueError("b"), ConfigError("c")):
        with pytest.raises(Exception):
            await error_middleware.on_message(mock_context, AsyncMock(side_effect=exc))

    assert error_middleware.get_error_stats() == {"ValueError": 2, "ConfigError": 1}

    error_middleware.reset_stats()
    assert error_middleware.get_error_stats() == {}


@pytest.mark.asyncio
async def test_error_callback(mock_context: MagicMock) -> None:
    callback = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=MagicMock(), error_callback=callback)
    error = RuntimeError("x")

    with pytest.raises(RuntimeError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=error))

    callback.assert_called_once_with(error, mock_context)


@pytest.mark.asyncio
async def test_failing_callback_does_not_mask_error(mock_context: MagicMock) -> None:
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(
        logger=mock_logger, error_callback=MagicMock(side_effect=OSError("cb"))
    )

    with pytest.raises(RuntimeError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=RuntimeError("x")))

    assert "Error callback failed" in mock_logger.warning.call_args.args[0]
