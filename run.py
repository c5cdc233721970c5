# -*- coding: utf-8 -*-

from simpleux import create_app, db

app = create_app()

if __name__ == '__main__':
    # 数据库里没有表时先建表
    with app.app_context():
        db.create_all()

    app.run(
        debug=True,
        host="127.0.0.1",
        port=5050,
        use_reloader=False,
    )
