from schoolcrm.db.postgres import get_cursor
from schoolcrm.utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_LEAD_SOURCES = [
    ("WhatsApp", "message-circle", "#25D366"),
    ("Instagram", "instagram", "#E1306C"),
    ("Facebook", "facebook", "#1877F2"),
    ("Google", "search", "#4285F4"),
    ("Indicação", "users", "#F59E0B"),
    ("Site", "globe", "#6366F1"),
    ("Presencial", "map-pin", "#10B981"),
    ("Outro", "circle", "#6B7280"),
]


def init_catalog_tables() -> None:
    sql = """
    CREATE TABLE IF NOT EXISTS lead_sources (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        icon TEXT,
        color TEXT,
        is_system BOOLEAN DEFAULT FALSE,
        is_active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );

    CREATE UNIQUE INDEX IF NOT EXISTS lead_sources_name_idx ON lead_sources (lower(name));

    CREATE TABLE IF NOT EXISTS courses (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        description TEXT,
        modality TEXT NOT NULL DEFAULT 'presencial',
        duration_hours INTEGER,
        price NUMERIC(10, 2),
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS classes (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        course_id UUID NOT NULL REFERENCES courses (id),
        name TEXT NOT NULL,
        room TEXT,
        start_date DATE NOT NULL DEFAULT CURRENT_DATE,
        end_date DATE,
        max_students INTEGER,
        is_active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS classes_course_idx ON classes (course_id);

    CREATE TABLE IF NOT EXISTS custom_fields (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        entity_type TEXT NOT NULL DEFAULT 'lead',
        field_name TEXT NOT NULL,
        field_label TEXT NOT NULL,
        field_type TEXT NOT NULL,
        options JSONB,
        is_required BOOLEAN DEFAULT FALSE,
        order_index INTEGER DEFAULT 0,
        is_active BOOLEAN DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
    """

    with get_cursor() as (_, cur):
        cur.execute(sql)
        logger.info("lead_sources, courses, classes and custom_fields tables ensured.")


def init_leads_tables() -> None:
    sql = """
    CREATE TABLE IF NOT EXISTS leads (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        full_name TEXT NOT NULL,
        phone TEXT NOT NULL,
        email TEXT,
        guardian_name TEXT,
        source_id UUID REFERENCES lead_sources (id),
        campaign TEXT,
        ad_set TEXT,
        ad_name TEXT,
        external_id TEXT,
        external_source TEXT,
        notes TEXT,
        status TEXT NOT NULL DEFAULT 'lead',
        scheduled_at TIMESTAMPTZ,
        attended_at TIMESTAMPTZ,
        proposal_at TIMESTAMPTZ,
        enrolled_at TIMESTAMPTZ,
        lost_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    ALTER TABLE leads ADD COLUMN IF NOT EXISTS external_id TEXT;
    ALTER TABLE leads ADD COLUMN IF NOT EXISTS external_source TEXT;
    ALTER TABLE leads ADD COLUMN IF NOT EXISTS source_id UUID REFERENCES lead_sources (id);

    CREATE UNIQUE INDEX IF NOT EXISTS leads_phone_key ON leads (phone);
    CREATE INDEX IF NOT EXISTS leads_status_idx ON leads (status, created_at);

    CREATE TABLE IF NOT EXISTS lead_history (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        lead_id UUID NOT NULL REFERENCES leads (id) ON DELETE CASCADE,
        from_status TEXT,
        to_status TEXT NOT NULL,
        changed_by TEXT,
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE INDEX IF NOT EXISTS lead_history_lead_idx ON lead_history (lead_id, created_at);

    CREATE TABLE IF NOT EXISTS lead_custom_values (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        lead_id UUID NOT NULL REFERENCES leads (id) ON DELETE CASCADE,
        field_id UUID NOT NULL REFERENCES custom_fields (id) ON DELETE CASCADE,
        value_text TEXT,
        value_number DOUBLE PRECISION,
        value_date DATE,
        value_boolean BOOLEAN,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );
    """

    with get_cursor() as (_, cur):
        cur.execute(sql)
        logger.info("leads, lead_history and lead_custom_values tables ensured.")


def init_enrollments_table() -> None:
    sql = """
    CREATE TABLE IF NOT EXISTS enrollments (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        lead_id UUID REFERENCES leads (id),
        course_id UUID NOT NULL REFERENCES courses (id),
        class_id UUID REFERENCES classes (id),
        status TEXT NOT NULL DEFAULT 'ativo',
        student_age INTEGER,
        enrollment_type TEXT,
        referral_agent_code TEXT,
        influencer_name TEXT,
        notes TEXT,
        enrolled_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    ALTER TABLE enrollments ADD COLUMN IF NOT EXISTS enrollment_type TEXT;
    ALTER TABLE enrollments ADD COLUMN IF NOT EXISTS referral_agent_code TEXT;
    ALTER TABLE enrollments ADD COLUMN IF NOT EXISTS influencer_name TEXT;

    CREATE INDEX IF NOT EXISTS enrollments_lead_idx ON enrollments (lead_id);
    CREATE INDEX IF NOT EXISTS enrollments_course_idx ON enrollments (course_id, status);
    """

    with get_cursor() as (_, cur):
        cur.execute(sql)
        logger.info("enrollments table ensured.")


def seed_lead_sources() -> None:
    sql = """
        INSERT INTO lead_sources (name, icon, color, is_system, is_active)
        VALUES (%s, %s, %s, TRUE, TRUE)
        ON CONFLICT ((lower(name))) DO NOTHING;
    """
    with get_cursor() as (_, cur):
        for name, icon, color in SYSTEM_LEAD_SOURCES:
            cur.execute(sql, (name, icon, color))
        logger.info("System lead sources seeded.")


def init_schema() -> None:
    init_catalog_tables()
    init_leads_tables()
    init_enrollments_table()
    seed_lead_sources()
