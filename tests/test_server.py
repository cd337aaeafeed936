import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from system_catalog.server import run_entrypoint


@patch("system_catalog.server.load_settings")
@patch("system_catalog.server.configure_logging")
@patch("system_catalog.transport.http_server.create_http_app")
def test_run_entrypoint_serves_http_app(mock_create_http_app, mock_log, mock_settings):
    settings = MagicMock()
    settings.server.host = "0.0.0.0"
    settings.server.port = 8000
    settings.logging.file = None
    mock_settings.return_value = settings

    uvicorn_run = MagicMock()
    with patch.dict(sys.modules, {"uvicorn": SimpleNamespace(run=uvicorn_run)}):
        run_entrypoint()

    mock_log.assert_called_once_with(settings.logging)
    mock_create_http_app.assert_called_once_with()
    uvicorn_run.assert_called_once_with(
        mock_create_http_app.return_value,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )
