
from __future__ import annotations

from nico_comment_downloader.constants import COMMENTS_PER_LEAF, LEAF_NEW_NICORU, LEAF_UNION
from nico_comment_downloader.schemas import (
    LeafRange,
    Ping,
    PingType,
    RequestUnit,
    ThreadKeyPair,
    ThreadLeavesRequest,
    ThreadRequest,
    WatchSession,
)
from nico_comment_downloader.threadkey_resolver import ThreadKeyResolver


class RequestSequenceBuilder:
    """
    視聴ページの埋め込みデータから、コメントサーバーに送信するリクエストの列を組み立てる

    生成されるリクエストの順序は下記の通りで、コメントサーバーは ping を手がかりにリクエストとレスポンスを対応付けている
    そのため順序を入れ替えたり ping を省略したりしてはならない
    ・rs:0
    ・ps:0 → thread (スレッド 0) → thread_leaves (スレッド 0) → pf:0
    ・ps:1 → thread (スレッド 1) → thread_leaves (スレッド 1) → pf:1
    ・...
    ・rf:0
    """


    def __init__(self, resolver: ThreadKeyResolver) -> None:
        self.resolver = resolver


    def build(self, session: WatchSession, user_id: int | None = None, userkey: str | None = None) -> list[RequestUnit]:
        """
        コメントサーバーに送信するリクエストの列を組み立てる
        スレッドキーが必要なスレッドについては、ここで GetThreadKey API にアクセスする

        Args:
            session (WatchSession): 視聴ページの埋め込みデータ
            user_id (int | None, default=None): リクエストに使うユーザー ID (None なら視聴者のユーザー ID を使う)
            userkey (str | None, default=None): リクエストに使うユーザーキー (None なら埋め込みデータのユーザーキーを使う)

        Returns:
            list[RequestUnit]: コメントサーバーに送信するリクエストの列

        Raises:
            BadStatusError / TransportError / UnexpectedResponseError: スレッドキーの取得に失敗した場合
        """

        user_id_str = userIdString(user_id if user_id is not None else session.viewer.id)
        leaf_range = LeafRange.fromVideoDuration(
            session.video.duration,
            comments_per_leaf = COMMENTS_PER_LEAF,
            union = LEAF_UNION,
            new_nicoru = LEAF_NEW_NICORU,
        )

        # isActive なスレッドのみを元の順序のまま対象にする
        active_threads = [thread for thread in session.commentComposite.threads if thread.isActive]

        requests: list[RequestUnit] = [Ping(type=PingType.REQUEST_START, id=0)]
        for index, thread in enumerate(active_threads):

            # スレッドキーが必要なスレッドではユーザーキーの代わりにスレッドキーを使う
            if thread.isThreadkeyRequired:
                thread_key_pair = self.resolver.resolve(thread.id)
                key = None
            else:
                thread_key_pair = ThreadKeyPair()
                key = userkey if userkey is not None else session.context.userkey

            thread_request = ThreadRequest(
                thread = str(thread.id),
                fork = thread.fork,
                user_id = user_id_str,
                userkey = key,
                threadkey = thread_key_pair.threadkey,
                force_184 = thread_key_pair.force_184,
            )
            thread_leaves_request = ThreadLeavesRequest(
                thread = str(thread.id),
                user_id = user_id_str,
                content = leaf_range,
                userkey = key,
                threadkey = thread_key_pair.threadkey,
                force_184 = thread_key_pair.force_184,
            )

            # パケット番号は isActive なスレッドの中での通し番号
            requests.extend([
                Ping(type=PingType.PACKET_START, id=index),
                thread_request,
                thread_leaves_request,
                Ping(type=PingType.PACKET_FINISH, id=index),
            ])

        requests.append(Ping(type=PingType.REQUEST_FINISH, id=0))
        return requests


def userIdString(user_id: int) -> str:
    """
    リクエストに載せるユーザー ID の文字列表現を返す
    ユーザー ID が 0 (未ログイン) の場合は空文字になる

    Args:
        user_id (int): ユーザー ID

    Returns:
        str: ユーザー ID の文字列表現
    """

    return '' if user_id == 0 else str(user_id)
