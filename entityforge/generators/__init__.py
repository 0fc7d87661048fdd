from entityforge.generators.postgres import PostgresGenerator
