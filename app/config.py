from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    database_url: str = "sqlite:///./apartment.db"
    cron_secret_token: str = ""
    mnotify_api_key: str = ""
    mnotify_sender_id: str = "ApartmentMgmt"
    resend_api_key: str = ""
    email_from: str = "Platinum Apartment <noreply@platinumapartment.com>"
    property_name: str = "Platinum Apartment"
    timezone: str = "Africa/Accra"
    guest_channels: str = "email,sms"
    retry_failed_same_day: bool = False
    send_delay_seconds: float = 0.1
    batch_timeout_seconds: float = 300.0
    log_level: str = "INFO"

    @property
    def guest_channel_list(self) -> list[str]:
        return [c.strip().lower() for c in self.guest_channels.split(",") if c.strip()]
