from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from platformdirs import PlatformDirs


class AppInfo:
    """
    Singleton class that provides information about the application and its related directories.

    The directories are determined using the `platformdirs` package, ensuring
    platform-specific conventions are adhered to. None of them belong to the
    patched application; they hold ymmp's own cache, settings and logs.

    Examples:
        >>> print(AppInfo().app_name)
        >>> print(AppInfo().cache_folder)
    """

    _instance: "None | AppInfo" = None

    def __new__(cls) -> "AppInfo":
        """
        Create a new instance or return the existing singleton instance of the `AppInfo` class.
        """
        if not cls._instance:
            cls._instance = super(AppInfo, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return

        # Application metadata

        self._app_name = "ymmp"
        self._app_display_name = "YandexMusicModPatcher"

        try:
            self._app_version = version(self._app_name)
        except PackageNotFoundError:
            self._app_version = "Unknown version"

        # Define important directories using platformdirs

        platform_dirs = PlatformDirs(appname=self._app_name, appauthor=False)
        self._app_storage_folder: Path = Path(platform_dirs.user_data_dir)
        self._user_log_folder: Path = Path(platform_dirs.user_log_dir)
        self._cache_folder: Path = Path(platform_dirs.user_cache_dir)

        # Derive some secondary paths

        self._settings_file: Path = self._app_storage_folder / "config.json"

        self._is_initialized: bool = True

    @property
    def app_name(self) -> str:
        return self._app_name

    @property
    def app_display_name(self) -> str:
        return self._app_display_name

    @property
    def app_version(self) -> str:
        """
        Get the version of the installed ymmp distribution.

        Returns:
            str: The version, or "Unknown version" when running from an uninstalled checkout.
        """
        return self._app_version

    @property
    def user_agent(self) -> str:
        """User-Agent sent with every request to the release feed."""
        ver = self._app_version if self._app_version[:1].isdigit() else "1.0.0"
        return f"YMMP-CLI/{ver}"

    @property
    def app_storage_folder(self) -> Path:
        """
        Get the path to the folder where user-specific data for the application is stored.

        Returns:
            Path: The path to the user-specific data folder.
        """
        return self._app_storage_folder

    @property
    def app_settings_file(self) -> Path:
        return self._settings_file

    @property
    def user_log_folder(self) -> Path:
        """
        Get the path to the folder where application logs are stored for the user.

        Returns:
            Path: The path to the user-specific log folder.
        """
        return self._user_log_folder

    @property
    def cache_folder(self) -> Path:
        """
        Get the root of the download cache. Downloaded assets, working copies
        and backups live in its ``temp`` subfolder.
        """
        return self._cache_folder
