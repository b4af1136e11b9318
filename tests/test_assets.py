from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image

from puzzlemaster.assets import AssetLoader, RasterImage, read_image
from puzzlemaster.config import EngineConfig
from puzzlemaster.errors import ImageLoadFailure
from tests.conftest import ImmediateExecutor, make_engine


@pytest.fixture
def asset_dir(tmp_path):
    Image.new("RGB", (40, 30), (1, 2, 3)).save(tmp_path / "one.png")
    Image.new("RGB", (20, 20), (4, 5, 6)).save(tmp_path / "two.png")
    (tmp_path / "broken.png").write_bytes(b"definitely not a png")
    return tmp_path


def test_read_image_reports_natural_size(asset_dir):
    raster = read_image(asset_dir / "one.png")
    assert isinstance(raster, RasterImage)
    assert raster.size == (40, 30)
    assert raster.image.mode == "RGBA"
    assert raster.source.endswith("one.png")


def test_missing_and_corrupt_images(asset_dir):
    with pytest.raises(ImageLoadFailure):
        read_image(asset_dir / "absent.png")
    with pytest.raises(ImageLoadFailure) as info:
        read_image(asset_dir / "broken.png")
    assert "broken.png" in str(info.value)


def test_loader_cycles_levels(asset_dir):
    config = EngineConfig(level_assets=["one.png", "two.png"], asset_dir=str(asset_dir))
    loader = AssetLoader(config, executor=ImmediateExecutor())
    assert loader.load_image(1).result().size == (40, 30)
    assert loader.load_image(2).result().size == (20, 20)
    assert loader.load_image(3).result().size == (40, 30)


def test_loader_failure_resolves_the_future(asset_dir):
    config = EngineConfig(level_assets=["broken.png"], asset_dir=str(asset_dir))
    loader = AssetLoader(config, executor=ImmediateExecutor())
    future = loader.load_image(1)
    assert isinstance(future.exception(), ImageLoadFailure)


def test_background_loading(asset_dir):
    config = EngineConfig(level_assets=["one.png"], asset_dir=str(asset_dir))
    loader = AssetLoader(config)
    try:
        assert loader.load_image(1).result(timeout=10).size == (40, 30)
    finally:
        loader.close()


def test_engine_with_real_loader(asset_dir):
    config_kwargs = {"level_assets": ["one.png"], "asset_dir": str(asset_dir)}
    with ThreadPoolExecutor(max_workers=1) as pool:
        eng = make_engine(loader=AssetLoader(EngineConfig(**config_kwargs), executor=pool), **config_kwargs)
        eng.load_level(1).result(timeout=10)
    # Leaving the pool joins the worker, so the completion callback has run.
    assert eng.pump()
    assert len(eng.pieces) == 64
    assert eng.target_rect.w / eng.target_rect.h == pytest.approx(40 / 30)
