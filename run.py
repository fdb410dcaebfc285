import os

from duckie import create_app, init_database

# 默认使用开发配置，可通过 FLASK_CONFIG 切换
app = create_app(os.environ.get('FLASK_CONFIG', 'default'))


# ----------------- 数据库初始化（CLI 命令） -----------------
@app.cli.command("init_db")
def init_db_command():
    with app.app_context():
        # 创建表并写入鸭子人格（重复执行不会产生重复数据）
        init_database()
    print('✅ 数据库初始化完成!')


# ---------------------------------------------------------------


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
