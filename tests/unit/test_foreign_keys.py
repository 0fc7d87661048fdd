"""
Tests for relation extraction from ALTER TABLE, table-level and inline
foreign keys.
"""
from entityforge import parse_sql


CUSTOMERS = '''
    CREATE TABLE customers (
      id BIGSERIAL PRIMARY KEY,
      name VARCHAR(100)
    );
'''

ORDERS = '''
    CREATE TABLE orders (
      id BIGSERIAL PRIMARY KEY,
      customer_id BIGINT NOT NULL
    );
'''

ORDERS_FK = '''
    ALTER TABLE orders ADD CONSTRAINT fk_orders_customer
      FOREIGN KEY (customer_id) REFERENCES customers(id);
'''


def _names(model):
    by_id = {e.id: e.name for e in model.entities}
    return [(by_id[r.source_entity_id], r.source_field_name, by_id[r.target_entity_id])
            for r in model.relations]


class TestAlterTableForeignKeys:

    def test_basic_relation(self):
        model = parse_sql(CUSTOMERS + ORDERS + ORDERS_FK)

        assert len(model.entities) == 2
        assert len(model.relations) == 1
        relation = model.relations[0]
        assert relation.type == 'ManyToOne'
        assert _names(model) == [('Order', 'customerId', 'Customer')]
        assert relation.foreign_key.column_name == 'customer_id'
        assert relation.foreign_key.nullable is False
        assert relation.foreign_key.on_delete == 'NO_ACTION'
        assert relation.foreign_key.on_update == 'NO_ACTION'
        assert relation.bidirectional is False
        assert relation.fetch_type == 'LAZY'
        assert relation.cascade == []

    def test_foreign_key_column_stays_a_field(self):
        model = parse_sql(CUSTOMERS + ORDERS + ORDERS_FK)
        order = model.get_entity_by_table('orders')
        assert [f.name for f in order.fields] == ['customerId']
        assert order.get_field('customerId').type == 'Long'

    def test_statement_order_does_not_matter(self):
        forward = parse_sql(CUSTOMERS + ORDERS + ORDERS_FK)
        backward = parse_sql(ORDERS_FK + ORDERS + CUSTOMERS)
        assert _names(forward) == _names(backward)

    def test_target_declared_after_source(self):
        model = parse_sql(ORDERS + ORDERS_FK + CUSTOMERS)
        assert _names(model) == [('Order', 'customerId', 'Customer')]

    def test_missing_target_table_is_dropped(self):
        model = parse_sql(ORDERS + ORDERS_FK)
        assert [e.name for e in model.entities] == ['Order']
        assert model.relations == []

    def test_missing_source_table_is_dropped(self):
        model = parse_sql(CUSTOMERS + ORDERS_FK)
        assert [e.name for e in model.entities] == ['Customer']
        assert model.relations == []

    def test_referential_actions(self):
        model = parse_sql(CUSTOMERS + ORDERS + '''
            ALTER TABLE orders ADD FOREIGN KEY (customer_id)
              REFERENCES customers(id) ON DELETE CASCADE ON UPDATE SET NULL;
        ''')
        fk = model.relations[0].foreign_key
        assert fk.on_delete == 'CASCADE'
        assert fk.on_update == 'SET_NULL'

    def test_set_default_falls_back_to_no_action(self):
        model = parse_sql(CUSTOMERS + ORDERS + '''
            ALTER TABLE orders ADD FOREIGN KEY (customer_id)
              REFERENCES customers(id) ON DELETE SET DEFAULT ON UPDATE RESTRICT;
        ''')
        fk = model.relations[0].foreign_key
        assert fk.on_delete == 'NO_ACTION'
        assert fk.on_update == 'RESTRICT'

    def test_several_add_clauses(self):
        model = parse_sql('''
            CREATE TABLE users (id BIGSERIAL PRIMARY KEY, email TEXT);
            CREATE TABLE shops (id BIGSERIAL PRIMARY KEY, title TEXT);
            CREATE TABLE reviews (id BIGSERIAL PRIMARY KEY, user_id BIGINT, shop_id BIGINT);
            ALTER TABLE reviews
              ADD CONSTRAINT fk_reviews_user FOREIGN KEY (user_id) REFERENCES users(id),
              ADD CONSTRAINT fk_reviews_shop FOREIGN KEY (shop_id) REFERENCES shops(id) ON DELETE CASCADE;
        ''')
        assert _names(model) == [
            ('Review', 'userId', 'User'),
            ('Review', 'shopId', 'Shop'),
        ]
        assert model.relations[1].foreign_key.on_delete == 'CASCADE'

    def test_quoted_and_schema_qualified_names(self):
        model = parse_sql('''
            CREATE TABLE public.customers (id BIGSERIAL PRIMARY KEY, name TEXT);
            CREATE TABLE public.orders (id BIGSERIAL PRIMARY KEY, customer_id BIGINT);
            ALTER TABLE ONLY public."orders"
              ADD CONSTRAINT "fk_orders_customer" FOREIGN KEY ("customer_id") REFERENCES public."customers"("id");
        ''')
        assert _names(model) == [('Order', 'customerId', 'Customer')]

    def test_table_names_match_case_insensitively(self):
        model = parse_sql('''
            CREATE TABLE Customers (id BIGSERIAL PRIMARY KEY, name TEXT);
            CREATE TABLE orders (id BIGSERIAL PRIMARY KEY, customer_id BIGINT);
            ALTER TABLE ORDERS ADD FOREIGN KEY (customer_id) REFERENCES CUSTOMERS(id);
        ''')
        assert _names(model) == [('Order', 'customerId', 'Customer')]

    def test_alter_without_foreign_key_is_ignored(self):
        model = parse_sql(CUSTOMERS + ORDERS + '''
            ALTER TABLE orders ADD COLUMN note TEXT;
            ALTER TABLE orders ADD CONSTRAINT uq_orders_customer UNIQUE (customer_id);
        ''')
        assert model.relations == []


class TestInlineForeignKeys:

    def test_column_references(self):
        model = parse_sql('''
            CREATE TABLE authors (id BIGSERIAL PRIMARY KEY, name TEXT);
            CREATE TABLE books (
              id BIGSERIAL PRIMARY KEY,
              author_id BIGINT REFERENCES authors(id) ON DELETE CASCADE,
              title TEXT NOT NULL
            );
        ''')
        assert _names(model) == [('Book', 'authorId', 'Author')]
        fk = model.relations[0].foreign_key
        assert fk.on_delete == 'CASCADE'
        assert fk.nullable is True

    def test_table_level_constraint(self):
        model = parse_sql('''
            CREATE TABLE authors (id BIGSERIAL PRIMARY KEY, name TEXT);
            CREATE TABLE posts (
              id BIGSERIAL PRIMARY KEY,
              author_id BIGINT NOT NULL,
              CONSTRAINT fk_posts_author FOREIGN KEY (author_id)
                REFERENCES authors(id) ON DELETE SET NULL ON UPDATE CASCADE
            );
        ''')
        assert _names(model) == [('Post', 'authorId', 'Author')]
        fk = model.relations[0].foreign_key
        assert fk.on_delete == 'SET_NULL'
        assert fk.on_update == 'CASCADE'
        assert fk.nullable is False

        post = model.get_entity_by_table('posts')
        assert [f.name for f in post.fields] == ['authorId']

    def test_same_foreign_key_declared_twice_yields_one_relation(self):
        model = parse_sql('''
            CREATE TABLE authors (id BIGSERIAL PRIMARY KEY, name TEXT);
            CREATE TABLE books (id BIGSERIAL PRIMARY KEY, author_id BIGINT REFERENCES authors(id));
            ALTER TABLE books ADD CONSTRAINT fk_books_author FOREIGN KEY (author_id) REFERENCES authors(id);
        ''')
        assert len(model.relations) == 1

    def test_two_foreign_keys_to_the_same_table(self):
        model = parse_sql('''
            CREATE TABLE accounts (id BIGSERIAL PRIMARY KEY, owner TEXT);
            CREATE TABLE transfers (
              id BIGSERIAL PRIMARY KEY,
              from_account_id BIGINT REFERENCES accounts(id),
              to_account_id BIGINT REFERENCES accounts(id)
            );
        ''')
        assert _names(model) == [
            ('Transfer', 'fromAccountId', 'Account'),
            ('Transfer', 'toAccountId', 'Account'),
        ]

    def test_self_reference(self):
        model = parse_sql('''
            CREATE TABLE employees (
              id BIGSERIAL PRIMARY KEY,
              manager_id BIGINT REFERENCES employees(id)
            );
        ''')
        assert _names(model) == [('Employee', 'managerId', 'Employee')]

    def test_composite_foreign_key_uses_first_column(self):
        model = parse_sql('''
            CREATE TABLE regions (country CHAR(2), code CHAR(3), PRIMARY KEY (country, code));
            CREATE TABLE stores (
              id BIGSERIAL PRIMARY KEY,
              region_country CHAR(2),
              region_code CHAR(3),
              FOREIGN KEY (region_country, region_code) REFERENCES regions(country, code)
            );
        ''')
        assert len(model.relations) == 1
        assert model.relations[0].foreign_key.column_name == 'region_country'

    def test_foreign_key_to_unknown_table_keeps_the_column(self):
        model = parse_sql('''
            CREATE TABLE invoices (
              id BIGSERIAL PRIMARY KEY,
              tenant_id BIGINT REFERENCES tenants(id)
            );
        ''')
        assert model.relations == []
        assert [f.name for f in model.entities[0].fields] == ['tenantId']

    def test_relation_ids_follow_declaration_order(self):
        model = parse_sql('''
            CREATE TABLE a (id BIGSERIAL PRIMARY KEY, label TEXT);
            CREATE TABLE b (id BIGSERIAL PRIMARY KEY, a_id BIGINT REFERENCES a(id));
            CREATE TABLE c (id BIGSERIAL PRIMARY KEY, b_id BIGINT REFERENCES b(id));
        ''')
        assert [r.id for r in model.relations] == ['relation-1', 'relation-2']
        assert [r.source_field_name for r in model.relations] == ['aId', 'bId']
