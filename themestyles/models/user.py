from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTableUUID

from themestyles.database import Base


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"
