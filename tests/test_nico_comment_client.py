
import json
import httpx
import pytest

from conftest import WATCH_PAGE_URL, build_watch_data, build_watch_page
from nico_comment_downloader.exceptions import BadStatusError, TransportError
from nico_comment_downloader.nico_comment_client import NicoCommentClient


COMMENT_RESPONSE = b'[{"ping":{"content":"rs:0"}},{"thread":{"resultcode":0}}]'


class FakeNiconico:
    """
    視聴ページ・GetThreadKey API・コメントサーバーを模したハンドラー
    """

    def __init__(self, watch_data: dict | None = None, threadkey_status: int = 200, comment_error: Exception | None = None) -> None:
        self.watch_data = watch_data or build_watch_data()
        self.threadkey_status = threadkey_status
        self.comment_error = comment_error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == 'www.nicovideo.jp':
            return httpx.Response(200, content=build_watch_page(self.watch_data))
        if request.url.host == 'flapi.nicovideo.jp':
            return httpx.Response(self.threadkey_status, content=b'threadkey=1700000000.tk&force_184=1')
        if request.url.host == 'nmsg.nicovideo.jp':
            if self.comment_error is not None:
                raise self.comment_error
            return httpx.Response(200, content=COMMENT_RESPONSE)
        return httpx.Response(404)


@pytest.fixture
def fake_niconico():
    return FakeNiconico()


@pytest.fixture
def client(fake_niconico):
    with NicoCommentClient(WATCH_PAGE_URL, transport=httpx.MockTransport(fake_niconico)) as client:
        yield client


class TestNicoCommentClient:
    """NicoCommentClient のテスト"""

    def test_download_comments_returns_raw_response(self, client, fake_niconico):
        assert client.downloadComments() == COMMENT_RESPONSE
        assert [request.url.host for request in fake_niconico.requests] == [
            'www.nicovideo.jp',
            'flapi.nicovideo.jp',
            'nmsg.nicovideo.jp',
        ]

    def test_comment_request_is_posted_to_json_api(self, client, fake_niconico):
        client.downloadComments()

        request = fake_niconico.requests[-1]
        assert request.method == 'POST'
        assert str(request.url) == 'https://nmsg.nicovideo.jp/api.json/'
        assert request.headers['content-type'] == 'text/plain;charset=UTF-8'
        assert request.extensions['timeout'] == httpx.Timeout(60.0).as_dict()

    def test_comment_request_payload(self, client, fake_niconico):
        client.downloadComments()

        payload = json.loads(fake_niconico.requests[-1].content)
        assert len(payload) == 10
        assert payload[0] == {'ping': {'content': 'rs:0'}}
        assert payload[1] == {'ping': {'content': 'ps:0'}}
        assert payload[2]['thread']['thread'] == '1001'
        assert payload[2]['thread']['userkey'] == '1700000000.~1~userkey'
        assert payload[3]['thread_leaves']['content'] == '0-3:100,1000,nicoru:100'
        assert payload[4] == {'ping': {'content': 'pf:0'}}
        assert payload[5] == {'ping': {'content': 'ps:1'}}
        assert payload[6]['thread']['threadkey'] == '1700000000.tk'
        assert payload[6]['thread']['force_184'] == '1'
        assert 'userkey' not in payload[6]['thread']
        assert payload[7]['thread_leaves']['threadkey'] == '1700000000.tk'
        assert payload[8] == {'ping': {'content': 'pf:1'}}
        assert payload[9] == {'ping': {'content': 'rf:0'}}

    def test_overrides_are_sent(self, client, fake_niconico):
        client.downloadComments(user_id=42, userkey='override-key')

        payload = json.loads(fake_niconico.requests[-1].content)
        assert payload[2]['thread']['user_id'] == '42'
        assert payload[2]['thread']['userkey'] == 'override-key'

    def test_threadkey_failure_aborts_before_posting(self):
        fake_niconico = FakeNiconico(threadkey_status=500)
        with NicoCommentClient(WATCH_PAGE_URL, transport=httpx.MockTransport(fake_niconico)) as client:
            with pytest.raises(BadStatusError) as exc_info:
                client.downloadComments()

        assert exc_info.value.status_code == 500
        assert 'nmsg.nicovideo.jp' not in [request.url.host for request in fake_niconico.requests]

    def test_comment_server_transport_failure(self):
        fake_niconico = FakeNiconico(comment_error=httpx.ConnectTimeout('timed out'))
        with NicoCommentClient(WATCH_PAGE_URL, transport=httpx.MockTransport(fake_niconico)) as client:
            with pytest.raises(TransportError):
                client.downloadComments()

    def test_comment_server_url(self, watch_session):
        assert NicoCommentClient.commentServerURL(watch_session) == 'https://nmsg.nicovideo.jp/api.json/'

    def test_log_is_written_to_file(self, fake_niconico, tmp_path):
        log_path = tmp_path / 'client.log'
        with NicoCommentClient(WATCH_PAGE_URL, verbose=True, log_path=log_path, transport=httpx.MockTransport(fake_niconico)) as client:
            client.downloadComments()

        log = log_path.read_text(encoding='utf-8')
        assert 'Video has 4567 comments' in log
        assert 'Thread 1003 requires threadkey.' in log

        # スレッドキーのログは実際に取得したスレッドについてのみ、取得の前後に出力される
        assert 'Thread 1001' not in log
        assert log.index('Video has 4567 comments') < log.index('Thread 1003 requires threadkey.')
        assert log.index('Thread 1003 requires threadkey.') < log.index('Thread 1003: threadkey=1700000000.tk force_184=1')
        assert log.index('Thread 1003: threadkey=1700000000.tk force_184=1') < log.index('Posting 10 request items')
