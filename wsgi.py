# 文件路径：wsgi.py
import os

from simpleux import create_app

app = create_app()

if __name__ == "__main__":
    from waitress import serve
    app.logger.info("正在启动生产服务器 (Waitress)...")
    serve(
        app,
        host=os.environ.get("SIMPLEUX_HOST", "127.0.0.1"),
        port=int(os.environ.get("SIMPLEUX_PORT", "8000")),
    )
