
from __future__ import annotations

import asyncio
import httpx
import threading
from typing import Any, Mapping

from nico_comment_downloader.constants import USER_AGENT
from nico_comment_downloader.exceptions import BadStatusError, ProtocolError, TransportError


class BlockingHTTPEngine:
    """
    httpx の非同期 HTTP クライアントを、同期的な (ブロッキングする) 呼び出しで使えるようにするためのクラス
    専用のスレッドでイベントループを回しておき、リクエストごとに 1 つのコルーチンをそのループに投げて完了を待つ
    1 回の呼び出しにつき 1 回だけリクエストを行い、リトライは一切しない
    """


    def __init__(self, headers: Mapping[str, str] | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """
        BlockingHTTPEngine のコンストラクタ

        Args:
            headers (Mapping[str, str] | None, default=None): 追加で送信するリクエストヘッダー
            transport (httpx.AsyncBaseTransport | None, default=None): httpx に渡すトランスポート (テスト時に差し替える)
        """

        # リクエストを処理するイベントループを専用のスレッドで開始
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, name='BlockingHTTPEngine', daemon=True)
        self.thread.start()
        self.closed = False

        async def create_client() -> httpx.AsyncClient:
            # httpx の非同期 HTTP クライアントのインスタンスを作成
            ## Cookie (ログインセッション) を後続のリクエストに引き継ぐため、クライアントは使い回す
            return httpx.AsyncClient(
                ## リクエストヘッダーを設定 (Chrome に偽装)
                headers = {
                    'accept-language': 'ja',
                    'user-agent': USER_AGENT,
                    **(headers or {}),
                },
                ## リダイレクトを追跡する
                follow_redirects = True,
                transport = transport,
            )

        # クライアントはイベントループ上で作成する
        self.httpx_client = asyncio.run_coroutine_threadsafe(create_client(), self.loop).result()


    def __enter__(self) -> BlockingHTTPEngine:
        return self


    def __exit__(self, *args: Any) -> None:
        self.close()


    @property
    def cookies(self) -> httpx.Cookies:
        """
        これまでのレスポンスで受け取った Cookie
        """

        return self.httpx_client.cookies


    def buildRequest(
        self,
        method: str,
        url: str,
        *,
        content: bytes | str | None = None,
        data: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        timeout: float | httpx.Timeout | Any = httpx.USE_CLIENT_DEFAULT,
    ) -> httpx.Request:
        """
        クライアントの既定のヘッダーや Cookie を反映した httpx.Request を作成する
        timeout を指定しなかった場合は httpx の既定のタイムアウトが使われる

        Returns:
            httpx.Request: 作成されたリクエスト

        Raises:
            TransportError: URL が不正でリクエストを作成できなかった場合
        """

        # コメントサーバーの URL は視聴ページの埋め込みデータから取得したものなので、不正な値の可能性がある
        try:
            return self.httpx_client.build_request(
                method, url, content=content, data=data, headers=headers, params=params, timeout=timeout,
            )
        except httpx.InvalidURL as ex:
            raise TransportError(url, ex) from ex


    def send(self, request: httpx.Request) -> tuple[bytes, int]:
        """
        リクエストを送信し、レスポンスが返ってくるまで呼び出し元のスレッドをブロックする

        Args:
            request (httpx.Request): 送信するリクエスト

        Returns:
            tuple[bytes, int]: (レスポンスボディ, HTTP ステータスコード) のタプル

        Raises:
            TransportError: 接続エラー・タイムアウト・リダイレクトのループなど、リクエストが失敗した場合
            ProtocolError: HTTP レスポンスとして解釈できない応答が返ってきた場合
        """

        if self.closed is True:
            raise RuntimeError('BlockingHTTPEngine is already closed.')

        # イベントループにリクエストを投げ、完了通知 (Future) が一度だけ届くのを待つ
        ## stream=False なので、レスポンスボディは読み切られた状態で返る
        future = asyncio.run_coroutine_threadsafe(self.httpx_client.send(request), self.loop)
        url = str(request.url)
        try:
            response = future.result()

        # httpx.ProtocolError / httpx.UnsupportedProtocol は httpx.TransportError のサブクラスなので先に捕捉する
        except (httpx.ProtocolError, httpx.UnsupportedProtocol) as ex:
            raise ProtocolError(url, ex) from ex
        except httpx.TransportError as ex:
            raise TransportError(url, ex) from ex
        # リダイレクトのループ (httpx.TooManyRedirects) やレスポンスボディの展開失敗 (httpx.DecodingError) など、
        # それ以外の httpx のリクエストエラーもすべて TransportError として扱う
        except httpx.RequestError as ex:
            raise TransportError(url, ex) from ex

        return response.content, response.status_code


    def sendExpect200(self, request: httpx.Request) -> bytes:
        """
        リクエストを送信し、HTTP 200 のレスポンスボディのみを返す

        Args:
            request (httpx.Request): 送信するリクエスト

        Returns:
            bytes: レスポンスボディ

        Raises:
            BadStatusError: HTTP ステータスコードが 200 以外だった場合
            TransportError: 接続エラー・タイムアウトなどネットワーク層でリクエストが失敗した場合
            ProtocolError: HTTP レスポンスとして解釈できない応答が返ってきた場合
        """

        body, status_code = self.send(request)
        if status_code != 200:
            raise BadStatusError(str(request.url), status_code, body)
        return body


    def close(self) -> None:
        """
        httpx クライアントを閉じ、イベントループとそのスレッドを終了する
        """

        if self.closed is True:
            return
        self.closed = True

        asyncio.run_coroutine_threadsafe(self.httpx_client.aclose(), self.loop).result()
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join()
        self.loop.close()
