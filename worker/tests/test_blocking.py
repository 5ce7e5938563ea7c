"""
Unit tests for glob request blocking.

Playwright routes and contexts are mocked; no browser required.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from worker.capture.blocking import ROUTE_ALL, RequestBlocker, glob_to_regex


def _route(url: str) -> MagicMock:
    route = MagicMock()
    route.request.url = url
    route.abort = AsyncMock()
    route.continue_ = AsyncMock()
    return route


def test_glob_matches_anywhere_in_url():
    regex = glob_to_regex("doubleclick")
    assert regex.search("https://ad.doubleclick.net/pixel")


def test_glob_star_is_only_wildcard():
    regex = glob_to_regex("*.gif")
    assert regex.search("https://cdn.example.com/a.gif")
    # "." is literal, not "any char"
    assert not regex.search("https://cdn.example.com/agif")


def test_glob_escapes_regex_metacharacters():
    regex = glob_to_regex("track?id=(1)")
    assert regex.search("https://example.com/track?id=(1)")
    assert not regex.search("https://example.com/trackid=1")


def test_glob_is_case_insensitive():
    assert glob_to_regex("*Analytics*").search("https://www.google-analytics.com/collect")


def test_blocker_matches_any_pattern():
    blocker = RequestBlocker(["*.mp4", "*hotjar*"])
    assert blocker.matches("https://static.hotjar.com/c/hotjar.js")
    assert blocker.matches("https://example.com/hero.MP4")
    assert not blocker.matches("https://example.com/app.js")


def test_blocker_ignores_blank_patterns():
    blocker = RequestBlocker(["", "  "])
    assert blocker.is_empty
    assert blocker.patterns == ()


@pytest.mark.asyncio
async def test_handle_route_aborts_matching_request():
    blocker = RequestBlocker(["*facebook*"])
    route = _route("https://connect.facebook.net/en_US/fbevents.js")

    await blocker.handle_route(route)

    route.abort.assert_awaited_once()
    route.continue_.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_route_continues_other_requests():
    blocker = RequestBlocker(["*facebook*"])
    route = _route("https://example.com/styles.css")

    await blocker.handle_route(route)

    route.continue_.assert_awaited_once()
    route.abort.assert_not_awaited()


@pytest.mark.asyncio
async def test_install_registers_catch_all_route():
    blocker = RequestBlocker(["*.gif"])
    context = MagicMock()
    context.route = AsyncMock()

    await blocker.install(context)

    context.route.assert_awaited_once_with(ROUTE_ALL, blocker.handle_route)


@pytest.mark.asyncio
async def test_install_without_patterns_does_not_intercept():
    context = MagicMock()
    context.route = AsyncMock()

    await RequestBlocker().install(context)

    context.route.assert_not_awaited()
