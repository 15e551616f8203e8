
class NicoCommentError(Exception):
    """
    NicoCommentDownloader が送出するすべての例外の基底クラス
    """


class TransportError(NicoCommentError):
    """
    DNS 解決・TLS ハンドシェイク・接続リセット・タイムアウトなど、ネットワーク層でリクエストが失敗した
    この場合 HTTP ステータスコードは存在しない
    """

    def __init__(self, url: str, reason: Exception) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f'Failed to request {url}: {reason!r}')


class ProtocolError(NicoCommentError):
    """
    HTTP ステータスを持つレスポンスとして解釈できない応答が返ってきた
    """

    def __init__(self, url: str, reason: Exception) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f'Got non-HTTP response from {url}: {reason!r}')


class BadStatusError(NicoCommentError):
    """
    HTTP 200 を期待したリクエストで 200 以外のステータスコードが返ってきた
    """

    def __init__(self, url: str, status_code: int, body: bytes) -> None:
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f'Got bad response {status_code} from {url}: {body.decode("utf-8", errors="replace")}')


class UnexpectedResponseError(NicoCommentError):
    """
    API のレスポンスが想定した形式ではなかった
    """

    def __init__(self, sender: str, response: str) -> None:
        self.sender = sender
        self.response = response
        super().__init__(f'Unexpected response from {sender}: {response}')


class WatchDataNotFoundError(NicoCommentError):
    """
    視聴ページから埋め込みデータ (js-initial-watch-data) が見つからなかった
    """

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f'Failed to get initial watch data from {url}')
