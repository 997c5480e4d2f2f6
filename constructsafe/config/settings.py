"""
Configuration settings for the non-conformity services.
Load configuration from environment variables or a .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


class Settings:
    """Application settings loaded from environment variables."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent.parent
    LOG_DIR = Path(os.getenv('LOG_DIR', str(PROJECT_ROOT / 'logs')))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Shown in notification subjects, e.g. "[ConstructSafe] NEW: ..."
    SYSTEM_NAME = os.getenv('SYSTEM_NAME', 'ConstructSafe')

    # ============================================================================
    # Ticket Numbering
    # ============================================================================
    TICKET_PREFIX = os.getenv('TICKET_PREFIX', 'NC')
    TICKET_PAD_WIDTH = int(os.getenv('TICKET_PAD_WIDTH', '5'))
    TICKET_MAX_ATTEMPTS = int(os.getenv('TICKET_MAX_ATTEMPTS', '5'))

    # ============================================================================
    # Notifications
    # ============================================================================
    NOTIFY_STORE_TIMEOUT = float(os.getenv('NOTIFY_STORE_TIMEOUT', '10'))
    NOTIFY_MAIL_TIMEOUT = float(os.getenv('NOTIFY_MAIL_TIMEOUT', '15'))

    # ============================================================================
    # Mail Transport Configuration (API)
    # ============================================================================
    MAIL_API_URL = os.getenv('MAIL_API_URL', '')
    MAIL_API_KEY = os.getenv('MAIL_API_KEY', '')
    MAIL_FROM = os.getenv('MAIL_FROM', 'noreply@constructsafe.local')
    MAIL_TIMEOUT = int(os.getenv('MAIL_TIMEOUT', '30'))
    MAIL_RETRY_ATTEMPTS = int(os.getenv('MAIL_RETRY_ATTEMPTS', '3'))
    MAIL_RETRY_DELAY = int(os.getenv('MAIL_RETRY_DELAY', '5'))

    # ============================================================================
    # PDF Report Flow (HTTP trigger of the external workflow)
    # ============================================================================
    # Contains a signed URL; keep it in .env, never in source control.
    PDF_FLOW_URL = os.getenv('PDF_FLOW_URL', '')
    PDF_FLOW_TIMEOUT = int(os.getenv('PDF_FLOW_TIMEOUT', '30'))

    # ============================================================================
    # Database Configuration
    # ============================================================================
    DB_HOST = os.getenv('DB_HOST', 'localhost')
    DB_PORT = int(os.getenv('DB_PORT', '5432'))
    DB_NAME = os.getenv('DB_NAME', 'constructsafe')
    DB_USER = os.getenv('DB_USER', 'postgres')
    DB_PASSWORD = os.getenv('DB_PASSWORD', 'postgres')

    @classmethod
    def validate_required_settings(cls) -> list[str]:
        """
        Validate that all required settings are configured.
        Returns list of missing required settings.
        """
        missing = []

        if not cls.MAIL_API_URL:
            missing.append('MAIL_API_URL')
        if not cls.TICKET_PREFIX:
            missing.append('TICKET_PREFIX')
        # PDF_FLOW_URL is only needed by the report button
        # if not cls.PDF_FLOW_URL:
        #     missing.append('PDF_FLOW_URL')

        return missing


# Create settings instance
settings = Settings()
