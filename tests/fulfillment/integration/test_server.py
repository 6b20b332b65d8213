"""The server runner hands the app to uvicorn with the requested options."""

import server


def test_runs_app_with_cli_options(monkeypatch):
    calls = []
    monkeypatch.setattr(server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr("sys.argv", ["server.py", "--port", "9001", "--reload"])

    server.main()

    app, options = calls[0]
    assert app == "app:app"
    assert options["port"] == 9001
    assert options["reload"] is True
    assert options["host"] == "0.0.0.0"
