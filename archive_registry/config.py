from datetime import UTC, datetime

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Archive Registry"
    base_storage_dir: str = "./data"
    request_timeout: int = 15

    # Public site URL used to turn public:// and private:// paths into links
    public_base_url: str = ""
    public_files_path: str = "sites/default/files"
    login_path: str = "/user/login"

    # ADA Title II compliance deadline (UTC)
    compliance_deadline: datetime = datetime(2026, 4, 24, tzinfo=UTC)

    notes_per_page: int = 25

    # Bearer tokens: manage = full archive management, view = read-only
    manage_token: str = ""
    view_token: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""        # anon/service_role key

    @property
    def site_base(self) -> str:
        return self.public_base_url.rstrip("/")

    @property
    def compliance_deadline_formatted(self) -> str:
        deadline = self.compliance_deadline
        deadline = deadline.replace(tzinfo=UTC) if deadline.tzinfo is None else deadline.astimezone(UTC)
        return f"{deadline:%B} {deadline.day}, {deadline.year}"


settings = Settings()
