"""
Tests for the memory readings behind the liveness check.
"""

import os

import estate_assistant.routers.health as health_routes


def test_current_rss_reads_resident_pages(tmp_path):
    statm = tmp_path / "statm"
    statm.write_text("5000 1200 300 10 0 900 0\n")

    assert health_routes.current_rss_bytes(str(statm)) == 1200 * os.sysconf("SC_PAGE_SIZE")


def test_current_rss_falls_back_to_peak(tmp_path):
    assert health_routes.current_rss_bytes(str(tmp_path / "missing")) == health_routes._max_rss_bytes()


def test_liveness_recovers_after_memory_spike(client, monkeypatch):
    readings = iter([600 * 1024 * 1024, 100 * 1024 * 1024])
    monkeypatch.setattr(health_routes, "current_rss_bytes", lambda: next(readings))

    during_spike = client.get("/api/health/liveness")
    after_spike = client.get("/api/health/liveness")

    assert during_spike.status_code == 503
    assert during_spike.json()["memoryUsage"] == 600 * 1024 * 1024
    assert after_spike.status_code == 200
    assert after_spike.json()["memoryUsage"] == 100 * 1024 * 1024
