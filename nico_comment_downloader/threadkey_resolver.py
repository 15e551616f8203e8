
from typing import Any, Callable

from nico_comment_downloader.blocking_http import BlockingHTTPEngine
from nico_comment_downloader.constants import GET_THREAD_KEY_API_URL
from nico_comment_downloader.exceptions import UnexpectedResponseError
from nico_comment_downloader.schemas import ThreadKeyPair


class ThreadKeyResolver:
    """
    スレッドキーが必要なスレッド (公式動画など) 向けに、GetThreadKey API からスレッドキーを取得する
    """


    def __init__(self, engine: BlockingHTTPEngine, print_log: Callable[..., Any] | None = None) -> None:
        """
        ThreadKeyResolver のコンストラクタ

        Args:
            engine (BlockingHTTPEngine): リクエストに使う BlockingHTTPEngine
            print_log (Callable[..., Any] | None, default=None): 動作ログの出力先 (NicoCommentClient.print を想定)
        """

        self.engine = engine
        self.print_log = print_log


    def print(self, *args: Any, **kwargs: Any) -> None:
        if self.print_log is not None:
            self.print_log(*args, **kwargs)


    def resolve(self, thread_id: int) -> ThreadKeyPair:
        """
        GetThreadKey API からスレッドキーを取得する

        Args:
            thread_id (int): スレッド ID

        Returns:
            ThreadKeyPair: 取得したスレッドキー

        Raises:
            BadStatusError: HTTP ステータスコードが 200 以外だった場合
            TransportError: ネットワーク層でリクエストが失敗した場合
            UnexpectedResponseError: レスポンスの形式が想定外だった場合
        """

        self.print(f'Thread {thread_id} requires threadkey. Retrieving...', verbose_log=True)

        # タイムアウトは httpx の既定値のまま
        request = self.engine.buildRequest('GET', GET_THREAD_KEY_API_URL, params={'thread': str(thread_id)})
        body = self.engine.sendExpect200(request)
        thread_key_pair = parseThreadKeyResponse(body.decode('utf-8', errors='replace'))

        self.print(f'Thread {thread_id}: threadkey={thread_key_pair.threadkey} force_184={thread_key_pair.force_184}', verbose_log=True)
        return thread_key_pair


def parseThreadKeyResponse(response: str) -> ThreadKeyPair:
    """
    GetThreadKey API のレスポンス (ex: threadkey=XXXXXXXX&force_184=1) を解析する
    threadkey / force_184 以外のキーが含まれている場合は、形式が変わったとみなしてエラーにする
    片方のキーしか含まれていない場合は、もう片方は None のまま返す

    Args:
        response (str): レスポンスボディ

    Returns:
        ThreadKeyPair: 解析されたスレッドキー

    Raises:
        UnexpectedResponseError: レスポンスの形式が想定外だった場合
    """

    thread_key_pair = ThreadKeyPair()

    # 空の要素 (&& や末尾の = など) は無視して分割する
    for piece in [piece for piece in response.split('&') if piece != '']:
        halves = [half for half in piece.split('=') if half != '']
        if len(halves) != 2:
            raise UnexpectedResponseError('GetThreadKey', response)

        name, value = halves
        if name == 'threadkey':
            thread_key_pair.threadkey = value
        elif name == 'force_184':
            thread_key_pair.force_184 = value
        else:
            raise UnexpectedResponseError('GetThreadKey', response)

    return thread_key_pair
