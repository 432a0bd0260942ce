from flask import Flask

from tinydb import TinyDB
from tinydb.storages import MemoryStorage

from zkvm.config import load_config, setup_logging

from zkvm_routes import zkvm_bp, init_zkvm_bp


def create_app(config=None, db=None, ctx=None):
    """zkVM 검증 서비스 애플리케이션을 만든다.

    config가 없으면 zkvm.yaml(있으면)을 읽는다. db를 주지 않으면
    config.service.db_path의 TinyDB 파일을 쓴다.
    """
    if config is None:
        config = load_config()

    if db is None:
        if config.service.db_path is None:
            DB = TinyDB(storage=MemoryStorage)   # Memory DB
        else:
            DB = TinyDB(config.service.db_path)  # Storage DB
    else:
        DB = db

    if ctx is None:
        ctx = config.verifier_context()

    app = Flask(__name__)
    init_zkvm_bp(DB.table("zkvm"), ctx)
    app.register_blueprint(zkvm_bp)
    return app


if __name__ == "__main__":
    config = load_config()
    setup_logging(config.log_level)
    create_app(config).run()
