import runpy

import uvicorn


def test_package_runs_asgi_app_with_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    runpy.run_module("roomchat", run_name="__main__")

    assert len(calls) == 1
    app, kwargs = calls[0]
    assert app == "roomchat.main:asgi_app"
    assert set(kwargs) == {"host", "port"}
