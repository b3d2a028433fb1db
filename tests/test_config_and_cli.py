"""
Tests for configuration loading and the command-line replay.

Tests cover:
- YAML loading and dotted lookups
- The shipped default configuration
- JSON-lines frame recordings
- main.py exit codes and output
"""

import json
import pytest # pyright: ignore[reportMissingImports]
import numpy as np
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import yaml

import main
from motion_analysis import NODDING_CONFIG, HAND_RAISE_CONFIG, nodding_config_from, hand_raise_config_from
from reaction_mapping import MappingTables
from utils.config_loader import get_nested_config, load_config
from utils.frame_io import iter_frame_payloads

DEFAULT_CONFIG = Path(__file__).parent.parent / 'configs' / 'default.yaml'


def write_recording(path: Path, duration_ms=4000, step_ms=100):
    with open(path, 'w') as f:
        for t in range(0, duration_ms + 1, step_ms):
            payload = {
                'timestamp': t,
                'face': {
                    'center_x': 320,
                    'center_y': 240 + 10 * float(np.sin(2 * np.pi * 1.5 * t / 1000.0)),
                    'width': 100,
                    'height': 100,
                },
                'blendshapes': [
                    {'categoryName': 'mouthSmileLeft', 'score': 0.01},
                    {'categoryName': 'mouthSmileRight', 'score': 0.01},
                    {'categoryName': 'jawOpen', 'score': 0.4},
                ],
            }
            f.write(json.dumps(payload) + '\n')


class TestConfigLoader:
    """Test YAML configuration loading."""

    def test_load_and_nested_lookup(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("motion:\n  nodding:\n    prominence: 0.02\n")

        config = load_config(path)
        assert get_nested_config(config, 'motion.nodding.prominence') == 0.02
        assert get_nested_config(config, 'motion.hand_raise.prominence', 0.01) == 0.01

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'absent.yaml')

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        assert load_config(path) == {}

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("motion: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_config(path)


class TestDefaultConfig:
    """The shipped configuration matches the in-code defaults."""

    def test_motion_sections(self):
        config = load_config(DEFAULT_CONFIG)
        assert nodding_config_from(config) == NODDING_CONFIG
        assert hand_raise_config_from(config) == HAND_RAISE_CONFIG

    def test_mapping_tables(self):
        config = load_config(DEFAULT_CONFIG)
        assert MappingTables.from_config(config) == MappingTables()


class TestFrameRecording:
    """Test JSON-lines frame streaming."""

    def test_skips_blank_and_invalid_lines(self, tmp_path):
        path = tmp_path / 'frames.jsonl'
        path.write_text('{"timestamp": 0}\n\nnot json\n[1, 2]\n{"timestamp": 100}\n')

        payloads = list(iter_frame_payloads(path))
        assert [p['timestamp'] for p in payloads] == [0, 100]

    def test_missing_recording(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(iter_frame_payloads(tmp_path / 'absent.jsonl'))


class TestCommandLine:
    """Test main.py replay."""

    def test_run_replay(self, tmp_path):
        path = tmp_path / 'frames.jsonl'
        write_recording(path)

        recommendations = main.run_replay(str(path), load_config(DEFAULT_CONFIG))

        assert recommendations
        assert recommendations[-1].reaction_state == 'nodding+surprised'
        assert recommendations[-1].eq_preset == 'treble-boost'

    def test_writes_output_file(self, tmp_path, monkeypatch):
        frames = tmp_path / 'frames.jsonl'
        output = tmp_path / 'out' / 'recs.jsonl'
        write_recording(frames)

        monkeypatch.setattr(sys, 'argv', [
            'main.py', '--frames', str(frames), '--config', str(DEFAULT_CONFIG),
            '--output', str(output)
        ])
        with pytest.raises(SystemExit) as exc:
            main.main()

        assert exc.value.code == 0
        records = [json.loads(line) for line in output.read_text().splitlines()]
        assert records
        assert len(records[-1]['eq_vector']) == 6

    def test_missing_frames_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, 'argv', [
            'main.py', '--frames', str(tmp_path / 'absent.jsonl'),
            '--config', str(DEFAULT_CONFIG)
        ])
        with pytest.raises(SystemExit) as exc:
            main.main()

        assert exc.value.code == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
