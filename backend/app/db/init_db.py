#!/usr/bin/env python3
"""
数据库初始化脚本

这个脚本用于创建所有数据库表。应用启动时（AUTO_CREATE_TABLES=True）也会调用 init_db。
"""

import logging
import os
import sys
from typing import Optional

from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """初始化数据库，创建所有表"""
    from app.db.base_class import Base
    # 导入所有模型，确保它们被正确注册
    import app.models  # noqa: F401

    if bind is None:
        from app.db.database import engine as bind
    logger.info(f"Creating tables on {bind.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=bind)


if __name__ == "__main__":
    # 添加项目根目录到Python路径
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    sys.path.insert(0, project_root)

    # 确保在导入配置之前加载环境变量
    from dotenv import load_dotenv
    env_path = os.path.join(project_root, '.env')
    if os.path.exists(env_path):
        load_dotenv(env_path)
    else:
        # 如果没有.env文件，尝试使用.env.example
        env_example_path = os.path.join(project_root, '.env.example')
        if os.path.exists(env_example_path):
            load_dotenv(env_example_path)

    logging.basicConfig(level=logging.INFO)
    init_db()
    print("数据库表创建成功！")
