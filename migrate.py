"""
Idempotent upgrades for existing note tree SQLite databases.

Run when upgrading an existing deployment:
    python migrate.py [path/to/notetree.db]

What it does:
- Create notes and notes_tree when missing
- Ensure notes_tree has note_pos, is_expanded, is_deleted, date_modified and the (note_pid, note_pos) index
- Backfill missing note_pos per parent by rowid order
- Ensure sync exists, drop duplicate rows per entity (newest id wins) and add the unique entity index
- Ensure audit_log exists
"""
import argparse
import sqlite3
from pathlib import Path

DB_PATH = Path("instance") / "notetree.db"


def table_exists(cur, name: str) -> bool:
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,))
    return cur.fetchone() is not None


def index_exists(cur, name: str) -> bool:
    cur.execute("SELECT name FROM sqlite_master WHERE type='index' AND name=?", (name,))
    return cur.fetchone() is not None


def column_exists(cur, table: str, column: str) -> bool:
    cur.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cur.fetchall())


def add_column(cur, table: str, column: str, col_type: str, default_sql: str | None = None):
    if column_exists(cur, table, column):
        print(f"[skip] {table}.{column} exists")
        return
    cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}")
    if default_sql is not None:
        cur.execute(f"UPDATE {table} SET {column} = {default_sql} WHERE {column} IS NULL")
    print(f"[add] {table}.{column}")


def ensure_notes(cur):
    if table_exists(cur, "notes"):
        print("[skip] notes exists")
        return
    cur.execute(
        """
        CREATE TABLE notes (
            note_id VARCHAR(32) PRIMARY KEY,
            note_title VARCHAR(200) NOT NULL DEFAULT 'new note',
            note_text TEXT,
            is_protected BOOLEAN NOT NULL DEFAULT 0,
            is_deleted BOOLEAN NOT NULL DEFAULT 0,
            date_created DATETIME,
            date_modified DATETIME
        )
        """
    )
    print("[add] notes table created")


def ensure_notes_tree(cur):
    if not table_exists(cur, "notes_tree"):
        cur.execute(
            """
            CREATE TABLE notes_tree (
                note_tree_id VARCHAR(32) PRIMARY KEY,
                note_id VARCHAR(32) NOT NULL REFERENCES notes (note_id),
                note_pid VARCHAR(32) NOT NULL,
                note_pos INTEGER NOT NULL DEFAULT 0,
                is_expanded BOOLEAN NOT NULL DEFAULT 0,
                is_deleted BOOLEAN NOT NULL DEFAULT 0,
                date_modified DATETIME
            )
            """
        )
        cur.execute("CREATE INDEX ix_notes_tree_note_id ON notes_tree (note_id)")
        cur.execute("CREATE INDEX ix_notes_tree_parent_pos ON notes_tree (note_pid, note_pos)")
        print("[add] notes_tree table created")
        return
    # Added without a default so the backfill below numbers every existing row
    add_column(cur, "notes_tree", "note_pos", "INTEGER")
    add_column(cur, "notes_tree", "is_expanded", "BOOLEAN NOT NULL DEFAULT 0")
    add_column(cur, "notes_tree", "is_deleted", "BOOLEAN NOT NULL DEFAULT 0")
    add_column(cur, "notes_tree", "date_modified", "DATETIME", default_sql="CURRENT_TIMESTAMP")

    rows = cur.execute(
        "SELECT note_tree_id, note_pid FROM notes_tree WHERE note_pos IS NULL ORDER BY note_pid, rowid"
    ).fetchall()
    if rows:
        next_pos = {}
        for note_tree_id, note_pid in rows:
            if note_pid not in next_pos:
                current_max = cur.execute(
                    "SELECT MAX(note_pos) FROM notes_tree WHERE note_pid = ?", (note_pid,)
                ).fetchone()[0]
                next_pos[note_pid] = 0 if current_max is None else current_max + 1
            cur.execute(
                "UPDATE notes_tree SET note_pos = ? WHERE note_tree_id = ?",
                (next_pos[note_pid], note_tree_id)
            )
            next_pos[note_pid] += 1
        print(f"[update] backfilled note_pos for {len(rows)} rows")

    if index_exists(cur, "ix_notes_tree_parent_pos"):
        print("[skip] ix_notes_tree_parent_pos exists")
    else:
        cur.execute("CREATE INDEX ix_notes_tree_parent_pos ON notes_tree (note_pid, note_pos)")
        print("[add] ix_notes_tree_parent_pos")


def ensure_sync(cur):
    if not table_exists(cur, "sync"):
        cur.execute(
            """
            CREATE TABLE sync (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                entity_name VARCHAR(50) NOT NULL,
                entity_id VARCHAR(32) NOT NULL,
                source_id VARCHAR(32) NOT NULL,
                sync_date DATETIME NOT NULL
            )
            """
        )
        print("[add] sync table created")

    if index_exists(cur, "ux_sync_entity") or _has_unique_constraint(cur):
        print("[skip] sync entity uniqueness exists")
        return
    cur.execute(
        """
        DELETE FROM sync WHERE id NOT IN (
            SELECT MAX(id) FROM sync GROUP BY entity_name, entity_id
        )
        """
    )
    if cur.rowcount:
        print(f"[update] removed {cur.rowcount} duplicate sync rows")
    cur.execute("CREATE UNIQUE INDEX ux_sync_entity ON sync (entity_name, entity_id)")
    print("[add] ux_sync_entity")


def _has_unique_constraint(cur):
    # Tables created by the app carry the constraint as an autoindex
    for row in cur.execute("PRAGMA index_list(sync)").fetchall():
        if not row[2]:
            continue
        columns = [info[2] for info in cur.execute(f"PRAGMA index_info('{row[1]}')").fetchall()]
        if columns == ["entity_name", "entity_id"]:
            return True
    return False


def ensure_audit_log(cur):
    if table_exists(cur, "audit_log"):
        print("[skip] audit_log exists")
        return
    cur.execute(
        """
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            date_modified DATETIME NOT NULL,
            category VARCHAR(20) NOT NULL,
            browser_id VARCHAR(64),
            note_id VARCHAR(32),
            change_from TEXT,
            change_to TEXT,
            comment TEXT
        )
        """
    )
    cur.execute("CREATE INDEX ix_audit_log_note_id ON audit_log (note_id)")
    print("[add] audit_log table created")


def run_migrations(conn):
    cur = conn.cursor()
    ensure_notes(cur)
    ensure_notes_tree(cur)
    ensure_sync(cur)
    ensure_audit_log(cur)
    conn.commit()


def main():
    parser = argparse.ArgumentParser(description="Upgrade an existing note tree database in place.")
    parser.add_argument("db_path", nargs="?", default=str(DB_PATH))
    args = parser.parse_args()

    db_path = Path(args.db_path)
    if not db_path.exists():
        print(f"Database not found at {db_path}. Start the app once to create it.")
        return
    conn = sqlite3.connect(db_path)
    try:
        run_migrations(conn)
        print("Migrations complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
