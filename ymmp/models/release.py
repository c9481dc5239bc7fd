import msgspec


class ReleaseAsset(msgspec.Struct, frozen=True):
    """A single downloadable file attached to a GitHub release."""

    name: str
    browser_download_url: str
    size: int = 0

    @property
    def download_url(self) -> str:
        return self.browser_download_url

    @property
    def is_compressed(self) -> bool:
        return self.name.endswith(".gz")


class ReleaseMetadata(msgspec.Struct, frozen=True):
    """
    Subset of the GitHub "latest release" payload used by the patcher.

    Unknown keys in the API response are ignored on decode.
    """

    name: str = ""
    published_at: str = ""
    tag_name: str = ""
    assets: list[ReleaseAsset] = msgspec.field(default_factory=list)

    def find_asset(self, name: str) -> ReleaseAsset | None:
        return next((asset for asset in self.assets if asset.name == name), None)
