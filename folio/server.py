"""Development server for Folio.

``folio serve`` builds the site, serves the output over HTTP and rebuilds
whenever a project file changes. Open pages reload themselves through a
small script that listens on a websocket.

Key classes:
- DevServer: Builds, serves, watches and rebuilds.
- LiveReloadHub: Websocket endpoint that tells connected pages to reload.
- _ReloadHandler: HTTP handler that injects the reload script and serves 404s.
- _ChangeHandler: Watchdog handler that triggers rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site, check_destination
from .config import load_config
from .errors import FolioError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4000

_IGNORED_PARTS = {".git", ".hg", ".svn", "node_modules", ".sass-cache", ".jekyll-cache"}

_RELOAD_SCRIPT = """
<script>
(() => {{
  const socket = new WebSocket('ws://' + location.hostname + ':{port}');
  socket.onmessage = (event) => {{
    const data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
}})();
</script>
"""


def build_reload_script(port: int) -> str:
    """Return the snippet that connects a page to the reload websocket."""
    return _RELOAD_SCRIPT.format(port=port)


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the built site with the reload script injected into HTML pages.

    Directory listings are never shown. Missing paths get ``404.html`` when
    the site has one.
    """

    reload_script = build_reload_script(35729)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - send_head never lists
        return self._serve_404()

    def send_head(self):
        target = self._resolve(Path(self.translate_path(self.path)))
        if target is None:
            return self._serve_404()
        if target.suffix in (".html", ".htm"):
            self._send_html(200, target)
            return None
        return super().send_head()

    @staticmethod
    def _resolve(path: Path) -> Path | None:
        """Map a request path to the file that answers it."""
        if path.is_dir():
            index = path / "index.html"
            return index if index.exists() else None
        if path.exists():
            return path
        # Extensionless permalinks are written as .html files.
        if not path.suffix:
            candidate = path.with_name(path.name + ".html")
            if candidate.exists():
                return candidate
        return None

    def _serve_404(self):
        error_page = Path(self.directory) / "404.html"
        if error_page.exists():
            self._send_html(404, error_page)
        else:
            self.send_error(404, "File not found")
        return None

    def _send_html(self, status: int, path: Path) -> None:
        html = path.read_text(encoding="utf-8")
        if "</body>" in html:
            html = html.replace("</body>", f"{self.reload_script}</body>", 1)
        else:
            html += self.reload_script
        payload = html.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)


class LiveReloadHub:
    """Websocket endpoint that pushes reload messages to open pages.

    The hub runs its own event loop on a background thread; ``notify`` may
    be called from any thread.

    Attributes:
        host: Interface to bind.
        port: Websocket port.
        clients: Currently connected websockets.
        loop: Event loop the websocket server runs on.
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self.serve())
        except OSError as exc:
            print(f"WebSocket server failed to start (port {self.port}): {exc}")

    async def serve(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self.handler, self.host, self.port):
            await asyncio.Future()

    async def handler(self, websocket):
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    def notify(self) -> None:
        """Tell every connected page to reload."""
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self.send_all(message), self.loop)

    async def send_all(self, message: str) -> None:
        """Send ``message`` to every client, dropping the ones that fail."""
        dropped = set()
        for client in self.clients:
            try:
                await client.send(message)
            except Exception:
                dropped.add(client)
        self.clients -= dropped

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Development server with live reload.

    Each build goes into a staging directory that replaces the served
    output only when the build succeeds, so a broken edit leaves the last
    good site online.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        output_dir: Directory being served.
        host: Interface both servers bind to.
        http_port: Port of the HTTP server.
        ws_port: Port of the live reload websocket.
        livereload: Websocket hub notified after each rebuild.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        host: str | None = None,
    ):
        """Read server settings from the configuration.

        Args:
            project_root: Root directory of the project.
            http_port: Overrides the ``port`` setting.
            ws_port: Overrides the ``livereload_port`` setting. Without
                either, the websocket uses the HTTP port plus one.
            host: Overrides the ``host`` setting.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / str(self.config["destination"])
        check_destination(project_root, self.output_dir)
        self._staging_dir = self.output_dir.with_name(f"{self.output_dir.name}.staging")
        self.host = host or str(self.config.get("host") or DEFAULT_HOST)
        self.http_port = int(http_port or self.config.get("port") or DEFAULT_PORT)
        self.ws_port = self._resolve_ws_port(ws_port, http_port)
        self.livereload = LiveReloadHub(self.host, self.ws_port)
        self._observer: Observer | None = None
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    def _resolve_ws_port(self, ws_port: int | None, http_port: int | None) -> int:
        if ws_port is not None:
            return int(ws_port)
        configured = self.config.get("livereload_port")
        # A port chosen on the command line moves the websocket with it.
        if configured and http_port is None:
            return int(configured)
        return self.http_port + 1

    @property
    def local_url(self) -> str:
        """Site ``url`` used while serving, so absolute links stay local."""
        return f"http://localhost:{self.http_port}"

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        self._build(include_drafts)
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.livereload.run, daemon=True).start()
        self._start_watcher(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self.livereload.stop()

    def _serve_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_PortReloadHandler",
            (_ReloadHandler,),
            {"reload_script": build_reload_script(self.ws_port)},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer((self.host, self.http_port), handler)
        print(f"Serving {self.output_dir} at http://{self.host}:{self.http_port}")
        httpd.serve_forever()

    def _start_watcher(self, include_drafts: bool) -> None:
        observer = Observer()
        observer.schedule(
            _ChangeHandler(self, include_drafts), str(self.project_root), recursive=True
        )
        observer.start()
        self._observer = observer

    def _build(self, include_drafts: bool) -> None:
        staging = self._prepare_staging_dir()
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            base_url=self.local_url,
            clean_output=True,
            output_dir_override=staging,
            config_overrides={"baseurl": ""},
        )
        self._activate_staging(staging)

    def is_ignored(self, path: Path) -> bool:
        """Whether a change at ``path`` should not trigger a rebuild."""
        for generated in (self.output_dir, self._staging_dir):
            if path == generated or generated in path.parents:
                return True
        return any(part in _IGNORED_PARTS for part in path.parts)

    def rebuild(self, include_drafts: bool) -> bool:
        """Rebuild after a change and reload connected pages.

        Changes arriving while a build runs, or within the debounce window,
        are dropped; so are events that leave the project unchanged. Build
        errors are printed and the previous output keeps being served.

        Returns:
            True if the site was rebuilt and pages were told to reload.
        """
        if self._rebuilding or time.time() - self._last_rebuild_at < self._debounce_seconds:
            return False
        signature = self._compute_signature()
        if signature is not None and signature == self._last_signature:
            return False
        self._rebuilding = True
        try:
            print("Change detected; rebuilding...")
            try:
                self._build(include_drafts)
            except FolioError as exc:
                print(f"Build failed: {exc}")
                return False
            self._last_signature = signature
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self.livereload.notify()
            return True
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _compute_signature(self) -> tuple | None:
        """Snapshot (path, mtime, size) of every watched file."""
        entries: list[tuple] = []
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            current = Path(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not self.is_ignored(current / d))
            for name in sorted(filenames):
                path = current / name
                try:
                    stat = path.stat()
                except OSError:
                    continue
                rel = path.relative_to(self.project_root).as_posix()
                entries.append((rel, stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None

    def _prepare_staging_dir(self) -> Path:
        if self._staging_dir.exists():
            shutil.rmtree(self._staging_dir)
        self._staging_dir.mkdir(parents=True)
        return self._staging_dir

    def _activate_staging(self, staging: Path) -> None:
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(staging, self.output_dir)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory or self.server.is_ignored(Path(event.src_path)):
            return
        self.server.rebuild(self.include_drafts)
