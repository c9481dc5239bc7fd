from enum import Enum


class PatchVariant(str, Enum):
    DEFAULT = "default"
    DEVTOOLS_ONLY = "devtoolsOnly"


# Release feed
GITHUB_LATEST_RELEASE_URL = (
    "https://api.github.com/repos/TheKing-OfTime/YandexMusicModClient/releases/latest"
)
GITHUB_ACCEPT_HEADER = "application/vnd.github.v3+json"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"
API_TIMEOUT = 15
DOWNLOAD_TIMEOUT = 30
DOWNLOAD_CHUNK_SIZE = 131072  # 128KB

# Release asset base names per patch variant
VARIANT_ASSET_NAMES = {
    PatchVariant.DEFAULT: "app.asar",
    PatchVariant.DEVTOOLS_ONLY: "appDevTools.asar",
}
COMPRESSED_SUFFIX = ".gz"
PARTIAL_SUFFIX = ".part"

# Files inside the cache temp folder
WORKING_ARCHIVE_NAME = "app.asar"
BACKUP_SUFFIX = ".backup"
ARCHIVE_BACKUP_NAME = WORKING_ARCHIVE_NAME + BACKUP_SUFFIX
LOCK_FILE_NAME = "ymmp.lock"

# Target application
APP_DISPLAY_NAME = "Яндекс Музыка"
WINDOWS_INSTALL_FOLDER = "YandexMusic"
WINDOWS_EXECUTABLE_NAME = APP_DISPLAY_NAME + ".exe"
LINUX_INSTALL_ROOT = "/opt/" + APP_DISPLAY_NAME
LINUX_LAUNCHER_NAME = "yandexmusic"
MACOS_INSTALL_ROOT = "/Applications/" + APP_DISPLAY_NAME + ".app"
RESOURCE_ARCHIVE_NAME = "app.asar"
METADATA_FILE_NAME = "package.json"

# Process handling
TERMINATE_GRACE_SECONDS = 2.0
