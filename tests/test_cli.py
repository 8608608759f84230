import json

import pytest
from click.testing import CliRunner
from PIL import Image

from mandelbrot_raster import __version__
from mandelbrot_raster.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


def test_render_writes_image(runner, tmp_path):
    output = tmp_path / "out.png"
    result = runner.invoke(main, ['render', str(output), '--width', '30', '--max-iter', '50',
                                  '--workers', '2', '--no-progress'])

    assert result.exit_code == 0, result.output
    assert "Rendering 30x20, max_iter=50" in result.output
    assert f"Saved: {output}" in result.output
    with Image.open(output) as img:
        assert img.size == (30, 20)


def test_render_with_smooth_hue_and_depth(runner, tmp_path):
    output = tmp_path / "out.npy"
    result = runner.invoke(main, ['render', str(output), '--width', '16', '--height', '8',
                                  '--smooth', '--palette', 'hue', '--cycles', '2',
                                  '--exponent', '0.5', '--depth', 'uint16', '--no-table',
                                  '--no-progress'])

    assert result.exit_code == 0, result.output
    assert output.exists()
    metadata = json.loads(output.with_suffix('.json').read_text())
    assert metadata['resolution'] == [16, 8]
    assert metadata['channel_depth'] == 'uint16'
    assert metadata['smooth'] is True


def test_render_reports_progress(runner, tmp_path):
    output = tmp_path / "out.png"
    result = runner.invoke(main, ['render', str(output), '--width', '12', '--max-iter', '20',
                                  '--workers', '1'])

    assert result.exit_code == 0, result.output
    assert "100.0% (96/96 pixels)" in result.output


def test_render_degenerate_bounds_fails(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / "out.png"),
                                  '--bounds', '-1,-1,0,1', '--no-progress'])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert not (tmp_path / "out.png").exists()


def test_render_malformed_bounds_is_usage_error(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / "out.png"), '--bounds', '1,2,3'])
    assert result.exit_code == 2
    assert "Invalid bounds format" in result.output


def test_render_unsupported_format_fails(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / "out.bmp"), '--width', '8',
                                  '--no-progress'])
    assert result.exit_code == 1
    assert "Unsupported format" in result.output


def test_render_from_config_file(runner, tmp_path):
    config_path = tmp_path / "render.yaml"
    output = tmp_path / "from_config.png"
    config_path.write_text(
        "render:\n"
        "  bounds: [-1.5, 0.5, -1.0, 1.0]\n"
        "  width: 10\n"
        "  max_iterations: 30\n"
        f"  output: {output}\n"
    )

    result = runner.invoke(main, ['--config', str(config_path), 'render', '--no-progress'])

    assert result.exit_code == 0, result.output
    with Image.open(output) as img:
        assert img.size == (10, 10)


def test_render_with_preset_and_overrides(runner, tmp_path):
    output = tmp_path / "preset.png"
    result = runner.invoke(main, ['--preset', 'rainbow', 'render', str(output),
                                  '--width', '15', '--max-iter', '40', '--no-progress'])

    assert result.exit_code == 0, result.output
    assert "Rendering 15x10, max_iter=40" in result.output


def test_list_palettes(runner):
    result = runner.invoke(main, ['list-palettes'])
    assert result.exit_code == 0
    for name in ('linear', 'hue', 'uint8', 'uint16', 'float'):
        assert name in result.output


def test_list_presets(runner):
    result = runner.invoke(main, ['-v', 'list-presets'])
    assert result.exit_code == 0
    assert "classic" in result.output
    assert "max_iterations: 1000" in result.output


def test_validate_config(runner, tmp_path):
    good = tmp_path / "good.json"
    bad = tmp_path / "bad.json"
    good.write_text(json.dumps({"width": 300, "bounds": [-2, 1, -1, 1]}))
    bad.write_text(json.dumps({"max_iterations": 0}))

    result = runner.invoke(main, ['validate-config', str(good)])
    assert result.exit_code == 0
    assert "Resolution: 300x200" in result.output

    result = runner.invoke(main, ['validate-config', str(bad)])
    assert result.exit_code == 1
    assert "max_iterations must be at least 1" in result.output


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert f"v{__version__}" in result.output


def test_bare_group_prints_help(runner):
    result = runner.invoke(main, [])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "render" in result.output
