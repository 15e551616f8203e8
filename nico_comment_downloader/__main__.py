
import httpx
import os
import typer
from pathlib import Path
from pydantic import ValidationError
from rich import print
from rich.console import Console
from rich.rule import Rule
from rich.style import Style
from typing import Optional

from nico_comment_downloader import __version__
from nico_comment_downloader.exceptions import NicoCommentError
from nico_comment_downloader.nico_comment_client import NicoCommentClient


app = typer.Typer(help='NicoCommentDownloader: Niconico Video Legacy Comment Server Client')

# 標準出力にはコメントデータを書き出すため、メッセージは標準エラー出力に出す
console = Console(stderr=True)


@app.command(help='Download comments of a Niconico video from the legacy comment server.')
def download(
    url: str = typer.Argument(help='Niconico video watch page URL (ex: https://www.nicovideo.jp/watch/sm9)'),
    output: Optional[Path] = typer.Option(default=None, help='Output file path (default: stdout)'),
    user_id: Optional[int] = typer.Option(default=None, help='User ID to send to the comment server (default: viewer ID)'),
    userkey: Optional[str] = typer.Option(default=None, help='Userkey to send to the comment server (default: userkey in watch page)'),
    verbose: bool = typer.Option(default=False, help='Show verbose log'),
):
    # http / https の URL 以外は受け付けない
    try:
        parsed_url = httpx.URL(url)
    except httpx.InvalidURL:
        raise typer.BadParameter(f'Invalid URL: {url}', param_hint='URL')
    if parsed_url.scheme not in ('http', 'https') or parsed_url.host == '':
        raise typer.BadParameter(f'Invalid URL: {url}', param_hint='URL')

    with NicoCommentClient(url, verbose=verbose, console_output=True) as client:
        try:
            # 環境変数 nicouser / nicopass が設定されている場合のみログインする
            mail_tel = os.environ.get('nicouser')
            password = os.environ.get('nicopass')
            if mail_tel and password:
                client.login(mail_tel, password)
            else:
                client.print('Not logging in, set the environment variables nicouser and nicopass to log in')

            comments = client.downloadComments(user_id=user_id, userkey=userkey)

        except (NicoCommentError, ValidationError) as ex:
            console.print(str(ex), style='red', markup=False)
            console.print(Rule(characters='-', style=Style(color='#E33157')))
            raise typer.Exit(code=1)

    # レスポンスはそのまま (加工せずに) 書き出す
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(comments)
        console.print(f'Saved to {output}')
    else:
        stdout = typer.get_binary_stream('stdout')
        stdout.write(comments)
        stdout.flush()


@app.command(help='Show version.')
def version():
    print(f'NicoCommentDownloader version {__version__}')


if __name__ == '__main__':
    app()
