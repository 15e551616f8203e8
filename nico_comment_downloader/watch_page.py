
from bs4 import BeautifulSoup, Tag

from nico_comment_downloader.blocking_http import BlockingHTTPEngine
from nico_comment_downloader.constants import (
    INITIAL_WATCH_DATA_ATTRIBUTE,
    INITIAL_WATCH_DATA_ELEMENT_ID,
    LOGIN_API_URL,
    USER_SESSION_COOKIE_NAME,
)
from nico_comment_downloader.exceptions import WatchDataNotFoundError
from nico_comment_downloader.schemas import WatchSession


def parseWatchPage(engine: BlockingHTTPEngine, watch_page_url: str) -> WatchSession:
    """
    視聴ページを解析し、埋め込みデータを取得する

    Args:
        engine (BlockingHTTPEngine): リクエストに使う BlockingHTTPEngine
        watch_page_url (str): 視聴ページの URL (ex: https://www.nicovideo.jp/watch/sm9)

    Returns:
        WatchSession: 解析された埋め込みデータ

    Raises:
        BadStatusError: HTTP ステータスコードが 200 以外だった場合
        TransportError: ネットワーク層でリクエストが失敗した場合
        WatchDataNotFoundError: 視聴ページに埋め込みデータが存在しなかった場合
        pydantic.ValidationError: 埋め込みデータの形式が想定外だった場合
    """

    body = engine.sendExpect200(engine.buildRequest('GET', watch_page_url))

    soup = BeautifulSoup(body.decode('utf-8', errors='replace'), 'html.parser')
    watch_data_elm = soup.find(id=INITIAL_WATCH_DATA_ELEMENT_ID)
    if not isinstance(watch_data_elm, Tag):
        raise WatchDataNotFoundError(watch_page_url)
    api_data = watch_data_elm.get(INITIAL_WATCH_DATA_ATTRIBUTE)
    if not isinstance(api_data, str):
        raise WatchDataNotFoundError(watch_page_url)

    # data-api-data 属性には JSON が HTML エスケープされた状態で入っている (BeautifulSoup がアンエスケープしてくれる)
    return WatchSession.model_validate_json(api_data)


def login(engine: BlockingHTTPEngine, mail_tel: str, password: str) -> bool:
    """
    ニコニコアカウントにログインし、以降のリクエストでログインセッションの Cookie が送られるようにする
    ログインに失敗しても API は 200 を返すため、user_session Cookie がセットされたかどうかで成否を判定する

    Args:
        engine (BlockingHTTPEngine): リクエストに使う BlockingHTTPEngine
        mail_tel (str): メールアドレスまたは電話番号
        password (str): パスワード

    Returns:
        bool: ログインに成功したかどうか

    Raises:
        BadStatusError: HTTP ステータスコードが 200 以外だった場合
        TransportError: ネットワーク層でリクエストが失敗した場合
    """

    request = engine.buildRequest('POST', LOGIN_API_URL, data={'mail_tel': mail_tel, 'password': password})
    engine.sendExpect200(request)
    return any(cookie.name == USER_SESSION_COOKIE_NAME for cookie in engine.cookies.jar)
