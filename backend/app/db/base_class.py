from sqlalchemy.orm import declarative_base

# 所有ORM模型共享的声明式基类
Base = declarative_base()
