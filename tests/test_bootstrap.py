from class_attendance.database.bootstrap import iter_sql_statements, strip_create_db_and_use


def test_splits_statements_and_skips_comments():
    sql = """
    -- tables
    CREATE TABLE a (id INT);
    INSERT INTO a VALUES (1); -- trailing
    CREATE TABLE b (name VARCHAR(10) DEFAULT 'x;y');
    """

    statements = list(iter_sql_statements(sql))

    assert len(statements) == 3
    assert statements[0].startswith("CREATE TABLE a")
    assert "'x;y'" in statements[2]


def test_strips_create_database_and_use():
    sql = "CREATE DATABASE IF NOT EXISTS demo;\nUSE demo;\nCREATE TABLE t (id INT);\n"

    cleaned = strip_create_db_and_use(sql)

    assert "CREATE DATABASE" not in cleaned
    assert "USE demo" not in cleaned
    assert "CREATE TABLE t" in cleaned
