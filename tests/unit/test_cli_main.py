from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path

import psycopg2
import pytest

import review_import.cli.__main__ as cli_module
from review_import.cli import main as cli_main
from review_import.config.loader import load_config
from review_import.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handlers bind sys.stdout at setup; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


def test_cli_no_files_success(write_config, temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert 'SUMMARY files=0/0 success=0 failed=0 records=0' in out


def test_cli_directory_missing(write_config, temp_workdir: Path, capsys):
    text = write_config.read_text(encoding='utf-8').replace('./data', './missing_dir')
    write_config.write_text(text, encoding='utf-8')
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert 'ERROR directory not found:' in out


def test_cli_config_missing(temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 1
    assert 'ERROR config: config file not found' in out


def test_cli_invalid_config(write_config, capsys):
    write_config.write_text(write_config.read_text(encoding='utf-8') + "unknown_key: 1\n", encoding='utf-8')
    assert cli_main([]) == 1
    assert 'config validation failed' in capsys.readouterr().out


def test_cli_imports_workbook(write_config, sample_workbook, temp_workdir: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert 'SUMMARY files=1/1 success=1 failed=0 records=3' in out
    docs = list((temp_workdir / 'store' / 'performance').glob('performance_*.json'))
    assert len(docs) == 1
    doc = json.loads(docs[0].read_text(encoding='utf-8'))
    assert doc['metadata']['detectedPeriods'] == ['2025年第2季度']


def test_cli_partial_failure_exit_code(write_config, sample_workbook, temp_workdir: Path, make_workbook, capsys):
    make_workbook(temp_workdir / 'data' / 'broken.xlsx', [['张三', '技术部'], ['李雷', '市场部']])
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert 'SUMMARY files=2/2 success=1 failed=1 records=3' in out
    assert 'ERROR broken.xlsx:' in out


def test_cli_history(write_config, sample_workbook, capsys):
    assert cli_main([]) == 0
    capsys.readouterr()
    assert cli_main(['--history']) == 0
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith('{')]
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry['filename'] == '2025年第2季度绩效考核.xlsx'
    assert entry['recordCount'] == 3


def test_cli_inspect_data(write_config, sample_workbook, capsys):
    code = cli_main(['--inspect-data'])
    out = capsys.readouterr().out
    assert code == 0
    assert 'FILE: 2025年第2季度绩效考核.xlsx' in out
    assert "roster=['李四']" in out
    assert "roster=['王五']" in out
    assert 'records=3' in out
    assert not (Path('store')).exists()


def test_cli_inspect_data_skips_lock_files_and_directories(write_config, sample_workbook, capsys):
    (sample_workbook.parent / '~$2025年第2季度绩效考核.xlsx').write_bytes(b'lock')
    (sample_workbook.parent / 'archive.xlsx').mkdir()
    assert cli_main(['--inspect-data']) == 0
    out = capsys.readouterr().out
    assert [line for line in out.splitlines() if line.startswith('FILE:')] == ['FILE: 2025年第2季度绩效考核.xlsx']
    assert 'read_error' not in out


def test_cli_inspect_data_missing_directory(write_config, temp_workdir: Path, capsys):
    (temp_workdir / 'data').rmdir()
    assert cli_main(['--inspect-data']) == 1
    assert 'inspect: Directory not found' in capsys.readouterr().out


def test_cli_debug_mode(write_config, capsys):
    assert cli_main(['--debug']) == 0
    assert 'DEBUG debug mode enabled' in capsys.readouterr().out


def test_cli_postgres_storage(write_config, monkeypatch, capsys):
    write_config.write_text(write_config.read_text(encoding='utf-8').replace('storage: json', 'storage: postgres'), encoding='utf-8')

    class DummyCursor:
        def __init__(self):
            self.statements = []

        def execute(self, sql, params=None):
            self.statements.append(sql)

        def fetchall(self):
            return []

    cursor = DummyCursor()

    @contextmanager
    def fake_db_cursor(cfg):
        yield cursor

    monkeypatch.setattr(cli_module, '_db_cursor', fake_db_cursor)
    assert cli_main(['--history']) == 0
    assert cursor.statements[0].startswith('CREATE TABLE IF NOT EXISTS performance_records')
    assert any('GROUP BY import_id' in s for s in cursor.statements)


def test_cli_postgres_connection_failure(write_config, monkeypatch, capsys):
    write_config.write_text(write_config.read_text(encoding='utf-8').replace('storage: json', 'storage: postgres'), encoding='utf-8')

    def refuse(dsn):
        raise psycopg2.OperationalError('connection refused')

    monkeypatch.setattr(psycopg2, 'connect', refuse)
    assert cli_main([]) == 1
    assert 'ERROR database error: connection refused' in capsys.readouterr().out


def test_resolve_dsn_precedence(write_config, monkeypatch):
    for var in ('DATABASE_URL', 'PGDSN', 'PGHOST', 'PGPORT', 'PGUSER', 'PGPASSWORD', 'PGDATABASE'):
        monkeypatch.delenv(var, raising=False)
    cfg = load_config(write_config)
    assert cli_module._resolve_dsn(cfg) == 'host=localhost port=5432 user=appuser dbname=appdb password=secret'

    monkeypatch.setenv('PGHOST', 'db.internal')
    assert cli_module._resolve_dsn(cfg).startswith('host=db.internal ')

    monkeypatch.setenv('DATABASE_URL', 'postgresql://u@h/db')
    assert cli_module._resolve_dsn(cfg) == 'postgresql://u@h/db'


def test_load_env_file_overrides_environment(temp_workdir: Path, monkeypatch):
    monkeypatch.setenv('DATABASE_URL', 'postgresql://old')
    env = temp_workdir / '.env'
    env.write_text('DATABASE_URL=postgresql://from-env-file\n', encoding='utf-8')
    cli_module._load_env_file(env)
    assert os.environ['DATABASE_URL'] == 'postgresql://from-env-file'
    cli_module._load_env_file(temp_workdir / 'missing.env')
