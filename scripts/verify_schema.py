from schoolcrm.db.postgres import get_cursor

REQUIRED_TABLES = (
    "leads",
    "lead_sources",
    "lead_history",
    "lead_custom_values",
    "custom_fields",
    "courses",
    "classes",
    "enrollments",
)


def _assert_tables(cur):
    cur.execute(
        "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public'"
    )
    present = {row["table_name"] for row in cur.fetchall()}
    missing = [name for name in REQUIRED_TABLES if name not in present]
    if missing:
        raise SystemExit(f"Missing tables: {', '.join(missing)}")


def _assert_unique_phone(cur):
    cur.execute(
        """
        SELECT indexname
        FROM pg_indexes
        WHERE tablename = 'leads'
          AND indexdef LIKE 'CREATE UNIQUE INDEX%'
          AND indexdef LIKE '%(phone)%'
        """
    )
    if not cur.fetchone():
        raise SystemExit("leads.phone has no unique index; webhook dedup is not race-safe.")


def _assert_fallback_source(cur):
    cur.execute("SELECT count(*) AS total FROM lead_sources WHERE name = 'Outro'")
    if cur.fetchone()["total"] != 1:
        raise SystemExit("The fallback lead source 'Outro' is missing.")


def _report_duplicate_phones(cur):
    cur.execute(
        """
        SELECT phone, count(*) AS total
        FROM leads
        GROUP BY phone
        HAVING count(*) > 1
        ORDER BY total DESC
        LIMIT 20
        """
    )
    rows = cur.fetchall()
    if rows:
        raise SystemExit(
            "Duplicate phones found: " + ", ".join(f"{r['phone']} ({r['total']})" for r in rows)
        )


def main():
    with get_cursor() as (_, cur):
        _assert_tables(cur)
        _report_duplicate_phones(cur)
        _assert_unique_phone(cur)
        _assert_fallback_source(cur)
    print("Schema verification completed successfully.")


if __name__ == "__main__":
    main()
