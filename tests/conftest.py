
import html
import json
import httpx
import pytest
from typing import Any, Callable

from nico_comment_downloader.blocking_http import BlockingHTTPEngine
from nico_comment_downloader.schemas import ThreadKeyPair, WatchSession


WATCH_PAGE_URL = 'https://www.nicovideo.jp/watch/so12345678'
COMMENT_SERVER_URL = 'https://nmsg.nicovideo.jp/api/'


def build_thread(thread_id: int, fork: int = 0, is_active: bool = True, is_threadkey_required: bool = False) -> dict[str, Any]:
    return {
        'id': thread_id,
        'fork': fork,
        'isActive': is_active,
        'isDefaultPostTarget': False,
        'isLeafRequired': True,
        'isOwnerThread': fork == 1,
        'isThreadkeyRequired': is_threadkey_required,
        'hasNicoscript': False,
        'label': 'default',
        'postkeyStatus': 0,
    }


def build_watch_data(
    threads: list[dict[str, Any]] | None = None,
    duration: int = 125,
    viewer_id: int = 0,
    userkey: str = '1700000000.~1~userkey',
) -> dict[str, Any]:
    if threads is None:
        threads = [
            build_thread(1001, fork=0, is_threadkey_required=False),
            build_thread(1002, fork=1, is_active=False),
            build_thread(1003, fork=0, is_threadkey_required=True),
        ]
    return {
        'context': {'userkey': userkey, 'watchId': 'so12345678', 'watchTrackId': 'abc_123'},
        'commentComposite': {'threads': threads},
        'thread': {
            'commentCount': 4567,
            'ids': {'community': '1003', 'default': '1001'},
            'serverUrl': COMMENT_SERVER_URL,
        },
        'video': {'duration': duration, 'title': 'unused'},
        'viewer': {'id': viewer_id, 'isPremium': False, 'nickname': 'unused'},
    }


def build_watch_page(watch_data: dict[str, Any]) -> bytes:
    attr = html.escape(json.dumps(watch_data, ensure_ascii=False), quote=True)
    return (
        '<!DOCTYPE html><html><head><title>watch</title></head><body>'
        f'<div id="js-initial-watch-data" data-api-data="{attr}" data-environment="{{}}"></div>'
        '</body></html>'
    ).encode('utf-8')


class StubResolver:
    """
    GetThreadKey API にアクセスせず、固定のスレッドキーを返す
    """

    def __init__(self, thread_key_pair: ThreadKeyPair | None = None, error: Exception | None = None) -> None:
        self.thread_key_pair = thread_key_pair or ThreadKeyPair(threadkey='tk-abc', force_184='1')
        self.error = error
        self.calls: list[int] = []

    def resolve(self, thread_id: int) -> ThreadKeyPair:
        self.calls.append(thread_id)
        if self.error is not None:
            raise self.error
        return self.thread_key_pair


@pytest.fixture
def watch_data() -> dict[str, Any]:
    return build_watch_data()


@pytest.fixture
def watch_session(watch_data: dict[str, Any]) -> WatchSession:
    return WatchSession.model_validate(watch_data)


@pytest.fixture
def make_engine():
    engines: list[BlockingHTTPEngine] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> BlockingHTTPEngine:
        engine = BlockingHTTPEngine(transport=httpx.MockTransport(handler))
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        engine.close()
