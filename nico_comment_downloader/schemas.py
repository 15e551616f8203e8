
from __future__ import annotations

from enum import Enum
from pydantic import BaseModel, model_serializer, model_validator
from typing import ClassVar, Union

from nico_comment_downloader.constants import (
    COMMENT_SERVER_LANGUAGE,
    COMMENT_SERVER_NICORU,
    COMMENT_SERVER_SCORES,
    COMMENT_SERVER_VERSION,
    COMMENT_SERVER_WITH_GLOBAL,
    LEAF_DURATION_SECONDS,
)


class WatchContext(BaseModel):
    # コメントサーバーへのリクエストに使うユーザーキー
    userkey: str
    # 動画 ID (ex: sm9)
    watchId: str
    watchTrackId: str = ''


class WatchCommentThread(BaseModel):
    """
    commentComposite.threads の各スレッドの情報
    """
    # スレッド ID
    id: int
    # フォーク番号 (0: 通常コメント, 1: 投稿者コメント, 2: かんたんコメント)
    fork: int
    # このスレッドからコメントを取得すべきかどうか
    isActive: bool
    # このスレッドへのリクエストにスレッドキーが必要かどうか
    isThreadkeyRequired: bool
    # 以下はコメント取得処理では使っていない
    isDefaultPostTarget: bool = False
    isOwnerThread: bool = False
    isLeafRequired: bool = False
    hasNicoscript: bool = False
    label: str = ''
    postkeyStatus: int = 0


class WatchCommentComposite(BaseModel):
    threads: list[WatchCommentThread]


class WatchThreadIDs(BaseModel):
    community: str | None = None
    default: str


class WatchThread(BaseModel):
    # 動画に投稿されたコメント数
    commentCount: int
    ids: WatchThreadIDs
    # コメントサーバーの URL (ex: https://nmsg.nicovideo.jp/api/)
    serverUrl: str


class WatchVideo(BaseModel):
    # 動画の長さ (秒)
    duration: int


class WatchViewer(BaseModel):
    # 視聴者のユーザー ID (未ログイン時は 0)
    id: int
    isPremium: bool = False


class WatchSession(BaseModel):
    """
    ニコニコ動画の視聴ページの js-initial-watch-data (data-api-data 属性) のうち、コメント取得に必要な情報
    フィールド名は data-api-data 内の各値のキー名と同一 (そのため敢えて camelCase のままにしている)
    """
    context: WatchContext
    commentComposite: WatchCommentComposite
    thread: WatchThread
    video: WatchVideo
    viewer: WatchViewer


class ThreadKeyPair(BaseModel):
    """
    GetThreadKey API から取得したスレッドキー
    レスポンスに含まれていなかったフィールドは None のままになる
    """
    threadkey: str | None = None
    force_184: str | None = None


class PingType(str, Enum):
    REQUEST_START = 'rs'
    REQUEST_FINISH = 'rf'
    PACKET_START = 'ps'
    PACKET_FINISH = 'pf'


class Ping(BaseModel):
    """
    コメントサーバーへのリクエスト・レスポンスの区切りを示す ping
    """
    WIRE_KEY: ClassVar[str] = 'ping'

    type: PingType
    # パケット番号 (rs / rf は常に 0)
    id: int

    @model_serializer
    def serialize(self) -> dict[str, str]:
        # {"content": "ps:0"} のように種別とパケット番号をコロンで繋いだ文字列になる
        return {'content': f'{self.type.value}:{self.id}'}


class LeafRange(BaseModel):
    """
    thread_leaves の content に指定する、リーフ単位でのコメントの取得範囲
    """
    # リーフ数 (動画の長さを 1 分単位で切り上げたもの)
    num_leaves: int
    # 1 リーフあたりのコメント取得件数
    comments_per_leaf: int
    # 全体での取得件数
    union: int | None = None
    # ニコられたコメントを優先して取得するかどうか
    new_nicoru: bool = False

    @classmethod
    def fromVideoDuration(cls, video_duration: int, comments_per_leaf: int, union: int | None, new_nicoru: bool) -> LeafRange:
        """
        動画の長さ (秒) から LeafRange を生成する

        Args:
            video_duration (int): 動画の長さ (秒)
            comments_per_leaf (int): 1 リーフあたりのコメント取得件数
            union (int | None): 全体での取得件数 (None なら content に含めない)
            new_nicoru (bool): content に ,nicoru:100 を付与するかどうか

        Returns:
            LeafRange: 生成された LeafRange
        """

        num_leaves = (video_duration + LEAF_DURATION_SECONDS - 1) // LEAF_DURATION_SECONDS
        return cls(num_leaves=num_leaves, comments_per_leaf=comments_per_leaf, union=union, new_nicoru=new_nicoru)

    def __str__(self) -> str:
        # ex: 0-3:100,1000,nicoru:100
        union = f',{self.union}' if self.union is not None else ''
        new_nicoru = ',nicoru:100' if self.new_nicoru else ''
        return f'0-{self.num_leaves}:{self.comments_per_leaf}{union}{new_nicoru}'

    @model_serializer
    def serialize(self) -> str:
        # オブジェクトではなく文字列としてシリアライズされる
        return str(self)


def validateKeyMaterial(userkey: str | None, threadkey: str | None, force_184: str | None) -> None:
    """
    スレッドキーを使うスレッドではユーザーキーを送らないことを確認する

    Raises:
        ValueError: ユーザーキーとスレッドキー (force_184) が同時に指定されていた場合
    """

    if userkey is not None and (threadkey is not None or force_184 is not None):
        raise ValueError('userkey cannot be sent together with threadkey / force_184')


class ThreadRequest(BaseModel):
    """
    コメントサーバーへの thread リクエスト
    フィールド名はコメントサーバーに送信する JSON のキー名と同一
    """
    WIRE_KEY: ClassVar[str] = 'thread'

    # スレッド ID
    thread: str
    version: str = COMMENT_SERVER_VERSION
    fork: int
    language: int = COMMENT_SERVER_LANGUAGE
    num_res: int | None = None
    # ユーザー ID (未ログイン時は空文字)
    user_id: str
    with_global: int = COMMENT_SERVER_WITH_GLOBAL
    scores: int = COMMENT_SERVER_SCORES
    nicoru: int = COMMENT_SERVER_NICORU
    userkey: str | None = None
    threadkey: str | None = None
    force_184: str | None = None

    @model_validator(mode='after')
    def validate_key_material(self) -> ThreadRequest:
        validateKeyMaterial(self.userkey, self.threadkey, self.force_184)
        return self


class ThreadLeavesRequest(BaseModel):
    """
    コメントサーバーへの thread_leaves リクエスト
    フィールド名はコメントサーバーに送信する JSON のキー名と同一
    """
    WIRE_KEY: ClassVar[str] = 'thread_leaves'

    # スレッド ID
    thread: str
    language: int = COMMENT_SERVER_LANGUAGE
    # ユーザー ID (未ログイン時は空文字)
    user_id: str
    content: LeafRange
    scores: int = COMMENT_SERVER_SCORES
    nicoru: int = COMMENT_SERVER_NICORU
    userkey: str | None = None
    threadkey: str | None = None
    force_184: str | None = None

    @model_validator(mode='after')
    def validate_key_material(self) -> ThreadLeavesRequest:
        validateKeyMaterial(self.userkey, self.threadkey, self.force_184)
        return self


# コメントサーバーに送信するリクエストの 1 要素
RequestUnit = Union[Ping, ThreadRequest, ThreadLeavesRequest]
