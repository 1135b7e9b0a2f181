#!/usr/bin/env python3
"""
Launch Singalong in a native app window instead of the browser.
Starts the Flask server in a background thread, then opens a pywebview window
on it so the lyrics view can sit next to the Spotify client.
"""
import sys
import threading
import time
import urllib.request

from config_singalong import load_config


def server_url(port: int) -> str:
    return 'http://127.0.0.1:%d' % port


# Start Flask in a daemon thread so it dies when we exit
def run_server(port: int):
    import app as app_module
    app_module.app.run(debug=False, port=port, host='127.0.0.1', threaded=True, use_reloader=False)


def wait_for_server(url: str, timeout: float = 15, interval: float = 0.3) -> bool:
    # /api/session answers without a Spotify login, unlike / which redirects.
    for _ in range(int(timeout / interval)):
        try:
            urllib.request.urlopen(url + '/api/session', timeout=1)
            return True
        except Exception:
            time.sleep(interval)
    return False


def main():
    port = int(load_config().get('server_port', 5002))
    url = server_url(port)

    server_thread = threading.Thread(target=run_server, args=(port,), daemon=True)
    server_thread.start()

    if not wait_for_server(url):
        print('Singalong: server did not start in time.', file=sys.stderr)
        sys.exit(1)

    try:
        import webview
    except ImportError:
        print('Singalong: pywebview not installed. Install with: pip install pywebview', file=sys.stderr)
        sys.exit(1)

    webview.create_window(
        'Singalong',
        url,
        width=480,
        height=800,
        min_size=(360, 480),
        resizable=True,
    )
    webview.start(debug=False)
    sys.exit(0)


if __name__ == '__main__':
    main()
