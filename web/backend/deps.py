from typing import List, Optional

from fastapi import Depends

from music_storefront.core.config import Config, get_data_dir, load_config
from music_storefront.domain.catalog import Track, load_catalog
from music_storefront.domain.payments import CommerceClient, DownloadSigner
from music_storefront.domain.preview import WaveformCache


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    return load_config()


def get_catalog(config: Config = Depends(get_config)) -> List[Track]:
    """FastAPI dependency for the track catalog."""
    return load_catalog(config.tracks)


def get_commerce_client(config: Config = Depends(get_config)) -> Optional[CommerceClient]:
    """Coinbase Commerce client, or None while the API key is unset."""
    if not config.coinbase.api_key:
        return None
    return CommerceClient(
        config.coinbase.api_key,
        api_url=config.coinbase.api_url,
        api_version=config.coinbase.api_version,
        timeout=config.purchase.request_timeout,
    )


def get_download_signer(config: Config = Depends(get_config)) -> Optional[DownloadSigner]:
    """R2 download signer, or None while any storage setting is missing."""
    storage = config.storage
    if storage.missing_settings():
        return None
    return DownloadSigner(
        storage.endpoint,
        storage.access_key_id,
        storage.secret_access_key,
        storage.bucket_name,
        expires_in=storage.url_expiry,
    )


def get_waveform_cache() -> WaveformCache:
    return WaveformCache(get_data_dir() / "waveforms")
