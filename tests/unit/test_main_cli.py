"""
Tests for main.py CLI functionality.
"""
import json
import os
import tempfile

import pytest

from entityforge.exceptions import ModelFormatError
from entityforge.main import format_summary, main, read_model, read_sql_source
from entityforge.parsers.ddl import parse_sql

SHOP_SQL = '''
CREATE TABLE customers (id BIGSERIAL PRIMARY KEY, name VARCHAR(100) NOT NULL);
CREATE TABLE orders (id BIGSERIAL PRIMARY KEY, customer_id BIGINT NOT NULL);
ALTER TABLE orders ADD FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE;
'''


def _write(path, content):
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)
    return path


class TestReadSqlSource:

    def test_read_single_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'schema.sql'), 'CREATE TABLE test (id INT);')
            assert 'CREATE TABLE test' in read_sql_source(path)

    def test_read_directory_recursively_in_sorted_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            os.makedirs(os.path.join(tmpdir, 'tables'))
            _write(os.path.join(tmpdir, 'tables', 'b_orders.sql'), 'CREATE TABLE orders (id INT);')
            _write(os.path.join(tmpdir, 'a_users.sql'), 'CREATE TABLE users (id INT);')
            _write(os.path.join(tmpdir, 'notes.txt'), 'CREATE TABLE ignored (id INT);')

            content = read_sql_source(tmpdir)
            assert 'ignored' not in content
            assert content.index('users') < content.index('orders')

    def test_empty_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValueError, match="No .sql files found"):
                read_sql_source(tmpdir)

    def test_missing_path(self):
        with pytest.raises(ValueError, match="Path not found"):
            read_sql_source('/nonexistent/path/schema.sql')

    def test_invalid_utf8_is_replaced(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'latin1.sql')
            with open(path, 'wb') as f:
                f.write(b"CREATE TABLE t (note TEXT DEFAULT '\xe9');")
            assert 'CREATE TABLE t' in read_sql_source(path)


class TestReadModel:

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'model.json'), '{not json')
            with pytest.raises(ValueError, match="Invalid JSON"):
                read_model(path)

    def test_wrong_shape(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'model.json'), '[1, 2, 3]')
            with pytest.raises(ModelFormatError):
                read_model(path)

    def test_missing_file(self):
        with pytest.raises(ValueError, match="Path not found"):
            read_model('/nonexistent/model.json')


class TestSummary:

    def test_format_summary(self):
        summary = format_summary(parse_sql(SHOP_SQL))
        assert 'Entities (2):' in summary
        assert 'Customer (customers)' in summary
        assert '- name: String [NOT NULL]' in summary
        assert 'Relations (1):' in summary
        assert 'Order.customerId -> Customer (ManyToOne, ON DELETE CASCADE)' in summary


class TestMainCommands:

    def test_parse_to_stdout(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'shop.sql'), SHOP_SQL)
            main(['parse', '--source', path])

        data = json.loads(capsys.readouterr().out)
        assert [e['name'] for e in data['entities']] == ['Customer', 'Order']
        assert data['relations'][0]['foreignKey']['onDelete'] == 'CASCADE'

    def test_parse_to_file(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'shop.sql'), SHOP_SQL)
            out = os.path.join(tmpdir, 'model.json')
            main(['parse', '--source', path, '--json-out', out])

            with open(out, encoding='utf-8') as f:
                data = json.load(f)

        assert len(data['entities']) == 2
        assert 'JSON model saved to' in capsys.readouterr().out

    def test_parse_summary_only(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'shop.sql'), SHOP_SQL)
            main(['parse', '--source', path, '--summary'])

        out = capsys.readouterr().out
        assert out.startswith('Entities (2):')
        assert '"entities"' not in out

    def test_parse_keep_base_fields(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'shop.sql'), SHOP_SQL)
            main(['parse', '--source', path, '--keep-base-fields'])

        data = json.loads(capsys.readouterr().out)
        assert data['entities'][0]['fields'][0]['name'] == 'id'

    def test_parse_custom_base_fields(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(os.path.join(tmpdir, 'shop.sql'), SHOP_SQL)
            main(['parse', '--source', path, '--base-fields', 'id, name'])

        data = json.loads(capsys.readouterr().out)
        assert data['entities'][0]['fields'] == []

    def test_generate_from_parsed_model(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            sql_path = _write(os.path.join(tmpdir, 'shop.sql'), SHOP_SQL)
            model_path = os.path.join(tmpdir, 'model.json')
            out_path = os.path.join(tmpdir, 'out.sql')

            main(['parse', '--source', sql_path, '--json-out', model_path])
            main(['generate', '--source', model_path, '--sql-out', out_path, '--project-name', 'Shop'])

            with open(out_path, encoding='utf-8') as f:
                generated = f.read()

        assert '-- Project: Shop' in generated
        assert 'CREATE TABLE customers' in generated
        assert 'SQL saved to' in capsys.readouterr().out

    def test_generate_to_stdout(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            model_path = _write(os.path.join(tmpdir, 'model.json'),
                                json.dumps(parse_sql(SHOP_SQL).to_dict()))
            main(['generate', '--source', model_path])

        assert 'CREATE TABLE orders' in capsys.readouterr().out

    def test_missing_source_exits_with_error(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(['parse', '--source', '/nonexistent/schema.sql'])
        assert exc_info.value.code == 1
        assert 'Error: Path not found' in capsys.readouterr().err

    def test_bad_model_exits_with_error(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            model_path = _write(os.path.join(tmpdir, 'model.json'), '{"entities": [{"name": "X"}]}')
            with pytest.raises(SystemExit) as exc_info:
                main(['generate', '--source', model_path])
        assert exc_info.value.code == 1
        assert 'Invalid model document' in capsys.readouterr().err

    def test_command_is_required(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(['--version'])
        assert exc_info.value.code == 0
        assert 'EntityForge v' in capsys.readouterr().out
