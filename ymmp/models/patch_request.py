from pathlib import Path
from typing import Optional

import msgspec

from ymmp.models.settings import Settings
from ymmp.utils.constants import PatchVariant


class PatchRequest(msgspec.Struct, frozen=True):
    """
    Options for a single patcher invocation.

    Pure data class, captured once when the orchestrator is built and never mutated.
    """

    patch_variant: PatchVariant = PatchVariant.DEFAULT
    install_root: Optional[str] = None
    use_cache: bool = True
    keep_cache: bool = True
    auth_token: Optional[str] = None
    force_stop: bool = False

    @classmethod
    def from_options(
        cls,
        settings: Settings,
        patch_variant: PatchVariant | str = PatchVariant.DEFAULT,
        install_root: str | Path | None = None,
        use_cache: bool = True,
        keep_cache: bool = True,
        auth_token: Optional[str] = None,
        force_stop: bool = False,
    ) -> "PatchRequest":
        """
        Build a request from command line options, falling back to the
        configured custom path when no install root was given.

        :param settings: loaded configuration store
        :param patch_variant: which build of the mod to install
        :param install_root: explicit install location of Yandex Music
        :return: the frozen request
        """
        root = install_root or settings.custom_path or None
        return cls(
            patch_variant=PatchVariant(patch_variant),
            install_root=str(root) if root else None,
            use_cache=use_cache,
            keep_cache=keep_cache,
            auth_token=auth_token or None,
            force_stop=force_stop,
        )
