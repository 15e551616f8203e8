
# User-Agent を Chrome 126 に偽装
USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36'

# ニコニコのログイン API の URL
LOGIN_API_URL = 'https://account.nicovideo.jp/api/v1/login?site=niconico'
# ログイン成功時にセットされるセッション Cookie の名前
USER_SESSION_COOKIE_NAME = 'user_session'

# 視聴ページ内で埋め込みデータが格納されている要素の ID と属性名
INITIAL_WATCH_DATA_ELEMENT_ID = 'js-initial-watch-data'
INITIAL_WATCH_DATA_ATTRIBUTE = 'data-api-data'

# スレッドキーを取得する API の URL
## ?thread= にスレッド ID を指定する
GET_THREAD_KEY_API_URL = 'https://flapi.nicovideo.jp/api/getthreadkey'
# GetThreadKey API のレスポンスに含まれうるキー名
THREAD_KEY_RESPONSE_KEYS = ('threadkey', 'force_184')

# コメントサーバーへのリクエストに関する固定値
## version は 2009/09/04 から変わっていない
COMMENT_SERVER_VERSION = '20090904'
COMMENT_SERVER_LANGUAGE = 0
COMMENT_SERVER_WITH_GLOBAL = 1
COMMENT_SERVER_SCORES = 1
COMMENT_SERVER_NICORU = 3

# thread_leaves の content に指定するリーフ (1 分ごとのコメントの塊) の取得条件
COMMENTS_PER_LEAF = 100
LEAF_UNION = 1000
LEAF_NEW_NICORU = True
# 1 リーフあたりの秒数
LEAF_DURATION_SECONDS = 60

# コメントサーバーへの送信時の Content-Type
COMMENT_REQUEST_CONTENT_TYPE = 'text/plain;charset=UTF-8'
# コメントサーバーへの送信時のタイムアウト秒数
## それ以外のリクエストは httpx のデフォルトのタイムアウトを使う
COMMENT_REQUEST_TIMEOUT = 60.0
