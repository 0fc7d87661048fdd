from entityforge.parsers.ddl import DDLParser, parse_sql
