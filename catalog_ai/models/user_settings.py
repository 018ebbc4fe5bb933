"""
ユーザー設定テーブル
AIプロバイダーの選択と認証情報を保持する
"""
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_ai.database import Base


class UserSettings(Base):
    """ユーザー設定テーブル"""
    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String(100), primary_key=True)

    # gemini / claude / bedrock（未設定時はアプリケーション既定値）
    ai_provider: Mapped[str | None] = mapped_column(String(20), nullable=True)

    gemini_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    gemini_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    claude_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    claude_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    aws_access_key_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    aws_secret_access_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    aws_region: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bedrock_model: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<UserSettings(user_id={self.user_id}, ai_provider={self.ai_provider})>"
