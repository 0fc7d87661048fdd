import argparse
import glob
import json
import os
import sys

from entityforge.exceptions import EntityForgeError
from entityforge.generators.postgres import PostgresGenerator
from entityforge.logging_config import get_logger, setup_logging
from entityforge.models import DataModel
from entityforge.parsers.ddl import DDLParser

logger = get_logger("cli")


def get_version() -> str:
    version_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'VERSION')
    if os.path.exists(version_path):
        with open(version_path, 'r') as f:
            return f.read().strip()
    return 'Unknown'


def read_sql_source(path: str) -> str:
    """
    Reads SQL content from a file or recursively from a directory.
    """
    if os.path.isfile(path):
        logger.info(f"Reading {path}", extra={'file_path': path})
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            return f.read()

    elif os.path.isdir(path):
        content = []
        sql_files = glob.glob(os.path.join(path, '**/*.sql'), recursive=True)
        # Sort to ensure deterministic order
        sql_files.sort()

        if not sql_files:
            raise ValueError(f"No .sql files found in directory: {path}")

        for sql_file in sql_files:
            logger.info(f"Reading {sql_file}", extra={'file_path': sql_file})
            with open(sql_file, 'r', encoding='utf-8', errors='replace') as f:
                content.append(f.read())

        return "\n".join(content)

    else:
        raise ValueError(f"Path not found: {path}")


def read_model(path: str) -> DataModel:
    if not os.path.isfile(path):
        raise ValueError(f"Path not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    return DataModel.from_dict(data)


def build_parser(args) -> DDLParser:
    if args.keep_base_fields:
        return DDLParser(base_fields=())
    if args.base_fields is not None:
        names = [n.strip() for n in args.base_fields.split(',') if n.strip()]
        return DDLParser(base_fields=names)
    return DDLParser()


def format_summary(model: DataModel) -> str:
    entities_by_id = {e.id: e for e in model.entities}
    output = f"Entities ({len(model.entities)}):\n"
    for entity in model.entities:
        output += f"  {entity.name} ({entity.table_name})\n"
        for f in entity.fields:
            flags = []
            if not f.nullable:
                flags.append("NOT NULL")
            if f.unique:
                flags.append("UNIQUE")
            flag_str = f" [{', '.join(flags)}]" if flags else ""
            output += f"    - {f.name}: {f.type}{flag_str}\n"

    output += f"Relations ({len(model.relations)}):\n"
    for relation in model.relations:
        source = entities_by_id.get(relation.source_entity_id)
        target = entities_by_id.get(relation.target_entity_id)
        output += (f"  {source.name if source else '?'}.{relation.source_field_name} "
                   f"-> {target.name if target else '?'} ({relation.type}, "
                   f"ON DELETE {relation.foreign_key.on_delete})\n")
    return output


def run_parse(args):
    sql = read_sql_source(args.source)
    model = build_parser(args).parse(sql)
    logger.info(f"Parsed {len(model.entities)} entities and {len(model.relations)} relations")

    if args.summary:
        print(format_summary(model), end='')

    document = json.dumps(model.to_dict(), indent=2)
    if args.json_out:
        with open(args.json_out, 'w', encoding='utf-8') as f:
            f.write(document)
        print(f"JSON model saved to {args.json_out}")
    elif not args.summary:
        print(document)


def run_generate(args):
    model = read_model(args.source)
    sql = PostgresGenerator().generate(model, project_name=args.project_name)

    if args.sql_out:
        with open(args.sql_out, 'w', encoding='utf-8') as f:
            f.write(sql)
        print(f"SQL saved to {args.sql_out}")
    else:
        print(sql)


def main(argv=None):
    parser = argparse.ArgumentParser(description='EntityForge - SQL DDL to entity model')
    parser.add_argument('--version', action='version', version=f'EntityForge v{get_version()}')

    # Quality of Life flags, shared by every command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--verbose', '-v', action='count', default=0, help='Increase log verbosity (-v info, -vv debug)')
    common.add_argument('--log-format', choices=['text', 'json'], default='text', help='Log output format')
    common.add_argument('--no-color', action='store_true', help='Disable colored output')

    subparsers = parser.add_subparsers(dest='command', required=True)

    parse_cmd = subparsers.add_parser('parse', parents=[common], help='Parse SQL DDL into a JSON entity model')
    parse_cmd.add_argument('--source', required=True, help='Path to a .sql file or a directory of .sql files')
    parse_cmd.add_argument('--json-out', help='Path to save the JSON model (default: stdout)')
    parse_cmd.add_argument('--summary', action='store_true', help='Print a human-readable summary')
    parse_cmd.add_argument('--base-fields', help='Comma-separated column names to exclude from entities')
    parse_cmd.add_argument('--keep-base-fields', action='store_true', help='Keep id and audit columns')

    generate_cmd = subparsers.add_parser('generate', parents=[common], help='Generate PostgreSQL DDL from a JSON model')
    generate_cmd.add_argument('--source', required=True, help='Path to a JSON model produced by "parse"')
    generate_cmd.add_argument('--sql-out', help='Path to save the SQL script (default: stdout)')
    generate_cmd.add_argument('--project-name', default='API Project', help='Project name for the script header')

    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, log_format=args.log_format, no_color=args.no_color)

    try:
        if args.command == 'parse':
            run_parse(args)
        elif args.command == 'generate':
            run_generate(args)
    except (EntityForgeError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
