
from __future__ import annotations

import httpx
from pathlib import Path
from rich.console import Console
from rich.rule import Rule
from rich.style import Style
from typing import Any

from nico_comment_downloader.blocking_http import BlockingHTTPEngine
from nico_comment_downloader.constants import COMMENT_REQUEST_CONTENT_TYPE, COMMENT_REQUEST_TIMEOUT
from nico_comment_downloader.payload_encoder import encodePayload
from nico_comment_downloader.request_builder import RequestSequenceBuilder
from nico_comment_downloader.schemas import RequestUnit, WatchSession
from nico_comment_downloader.threadkey_resolver import ThreadKeyResolver
from nico_comment_downloader.watch_page import login, parseWatchPage


class NicoCommentClient:
    """
    ニコニコ動画の旧コメントサーバー (/api.json/) のクライアント実装
    下記の順に処理を行う (すべて同期的に、1 つずつ順番に実行される)
    ・視聴ページの埋め込みデータを取得する
    ・スレッドキーが必要なスレッドについて GetThreadKey API からスレッドキーを取得する
    ・ping / thread / thread_leaves からなるリクエストの列を組み立てて JSON にエンコードする
    ・コメントサーバーに POST し、レスポンスをそのまま返す
    """

    # 区切り線のスタイル
    RULE_STYLE = Style(color='#E33157')


    def __init__(
        self,
        watch_page_url: str,
        verbose: bool = False,
        console_output: bool = False,
        log_path: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        NicoCommentClient のコンストラクタ

        Args:
            watch_page_url (str): ニコニコ動画の視聴ページの URL (ex: https://www.nicovideo.jp/watch/sm9)
            verbose (bool, default=False): 詳細な動作ログを出力するかどうか
            console_output (bool, default=False): 動作ログをコンソール (標準エラー出力) に出力するかどうか
            log_path (Path | None, default=None): 動作ログをファイルに出力する場合のパス (console_output と併用可能)
            transport (httpx.AsyncBaseTransport | None, default=None): httpx に渡すトランスポート (テスト時に差し替える)
        """

        self.watch_page_url = watch_page_url
        self.verbose = verbose
        self.show_log = console_output
        self.log_path = log_path

        # 標準出力にはコメントデータを書き出すため、動作ログは標準エラー出力に出す
        self.console = Console(stderr=True)

        self.engine = BlockingHTTPEngine(transport=transport)
        self.resolver = ThreadKeyResolver(self.engine, print_log=self.print)
        self.builder = RequestSequenceBuilder(self.resolver)


    def __enter__(self) -> NicoCommentClient:
        return self


    def __exit__(self, *args: Any) -> None:
        self.close()


    def close(self) -> None:
        self.engine.close()


    def print(self, *args: Any, verbose_log: bool = False, **kwargs: Any) -> None:
        """
        NicoCommentClient の動作ログをコンソールやファイルに出力する

        Args:
            verbose_log (bool, default=False): 詳細な動作ログかどうか (指定された場合、コンストラクタで verbose が指定された時のみ出力する)
        """

        # このログが詳細な動作ログで、かつ詳細な動作ログの出力が有効でない場合は何もしない
        if verbose_log is True and self.verbose is False:
            return

        # 有効ならログをコンソールに出力する
        if self.show_log is True:
            self.console.print(*args, **kwargs)

        # ログファイルのパスが指定されている場合は、ログをファイルにも出力
        if self.log_path is not None:
            with self.log_path.open('a', encoding='utf-8') as f:
                Console(file=f, no_color=True).print(*args, **kwargs)


    def login(self, mail_tel: str, password: str) -> bool:
        """
        ニコニコアカウントにログインする
        ログインに失敗しても例外にはせず、未ログイン状態のままコメントの取得を続けられるようにする

        Args:
            mail_tel (str): メールアドレスまたは電話番号
            password (str): パスワード

        Returns:
            bool: ログインに成功したかどうか
        """

        self.print(f'Logging in as {mail_tel}...')
        is_logged_in = login(self.engine, mail_tel, password)
        if is_logged_in is False:
            self.print('Failed to log in')
        return is_logged_in


    def fetchWatchSession(self) -> WatchSession:
        """
        視聴ページから埋め込みデータを取得する

        Returns:
            WatchSession: 視聴ページの埋め込みデータ
        """

        self.print(f'Retrieving {self.watch_page_url} ...', verbose_log=True)
        session = parseWatchPage(self.engine, self.watch_page_url)
        self.print(f'Watch ID: {session.context.watchId} / Duration: {session.video.duration}s / '
                   f'Threads: {len(session.commentComposite.threads)}', verbose_log=True)
        return session


    def buildRequestSequence(self, session: WatchSession, user_id: int | None = None, userkey: str | None = None) -> list[RequestUnit]:
        """
        コメントサーバーに送信するリクエストの列を組み立てる

        Args:
            session (WatchSession): 視聴ページの埋め込みデータ
            user_id (int | None, default=None): リクエストに使うユーザー ID (None なら視聴者のユーザー ID を使う)
            userkey (str | None, default=None): リクエストに使うユーザーキー (None なら埋め込みデータのユーザーキーを使う)

        Returns:
            list[RequestUnit]: コメントサーバーに送信するリクエストの列
        """

        # スレッドキーの取得ログは ThreadKeyResolver が取得の直前・直後に出力する
        return self.builder.build(session, user_id=user_id, userkey=userkey)


    @staticmethod
    def commentServerURL(session: WatchSession) -> str:
        """
        埋め込みデータに含まれるコメントサーバーの URL を JSON 版 API の URL に変換する
        ex: https://nmsg.nicovideo.jp/api/ → https://nmsg.nicovideo.jp/api.json/

        Args:
            session (WatchSession): 視聴ページの埋め込みデータ

        Returns:
            str: JSON 版コメントサーバー API の URL
        """

        return session.thread.serverUrl.replace('/api/', '/api.json/')


    def downloadComments(self, user_id: int | None = None, userkey: str | None = None) -> bytes:
        """
        コメントサーバーからコメントを取得し、レスポンスボディをそのまま返す
        途中のどのリクエストが失敗しても、その時点で例外を送出して処理を中断する

        Args:
            user_id (int | None, default=None): リクエストに使うユーザー ID (None なら視聴者のユーザー ID を使う)
            userkey (str | None, default=None): リクエストに使うユーザーキー (None なら埋め込みデータのユーザーキーを使う)

        Returns:
            bytes: コメントサーバーのレスポンスボディ (JSON)

        Raises:
            BadStatusError: HTTP ステータスコードが 200 以外だった場合
            TransportError: ネットワーク層でリクエストが失敗した場合
            ProtocolError: HTTP レスポンスとして解釈できない応答が返ってきた場合
            UnexpectedResponseError: GetThreadKey API のレスポンスの形式が想定外だった場合
            WatchDataNotFoundError: 視聴ページに埋め込みデータが存在しなかった場合
        """

        session = self.fetchWatchSession()
        if session.viewer.id != 0:
            self.print(f'Logged in as ID {session.viewer.id} with key {session.context.userkey}')
        self.print(f'Video has {session.thread.commentCount} comments')
        self.print(Rule(characters='-', style=self.RULE_STYLE))

        sequence = self.buildRequestSequence(session, user_id=user_id, userkey=userkey)
        payload = encodePayload(sequence)

        comment_server_url = self.commentServerURL(session)
        self.print(f'Posting {len(sequence)} request items ({len(payload)} bytes) to {comment_server_url} ...', verbose_log=True)
        request = self.engine.buildRequest(
            'POST',
            comment_server_url,
            content = payload,
            headers = {'content-type': COMMENT_REQUEST_CONTENT_TYPE},
            timeout = COMMENT_REQUEST_TIMEOUT,
        )
        response = self.engine.sendExpect200(request)
        self.print(f'Received {len(response)} bytes.', verbose_log=True)
        self.print(Rule(characters='-', style=self.RULE_STYLE), verbose_log=True)
        return response
