"""SQL queries for the PostgreSQL resource store."""

# ============================================================================
# SCHEMA
# ============================================================================

SCHEMA_DDL = """
    CREATE TABLE IF NOT EXISTS {schema}.users (
        id BIGSERIAL PRIMARY KEY,
        username VARCHAR(255) NOT NULL,
        email VARCHAR(320) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    -- Lookups by email ignore case, so uniqueness does too
    CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_lower ON {schema}.users (lower(email));

    CREATE TABLE IF NOT EXISTS {schema}.folders (
        id BIGSERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        owner_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        parent_folder_id BIGINT REFERENCES {schema}.folders (id),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS idx_folders_parent ON {schema}.folders (parent_folder_id);
    CREATE INDEX IF NOT EXISTS idx_folders_owner ON {schema}.folders (owner_id);

    CREATE TABLE IF NOT EXISTS {schema}.files (
        id BIGSERIAL PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        owner_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        folder_id BIGINT NOT NULL REFERENCES {schema}.folders (id),
        path TEXT NOT NULL DEFAULT '',
        size BIGINT NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS idx_files_folder ON {schema}.files (folder_id);
    CREATE INDEX IF NOT EXISTS idx_files_owner ON {schema}.files (owner_id);

    CREATE TABLE IF NOT EXISTS {schema}.permission_folders (
        id BIGSERIAL PRIMARY KEY,
        user_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        folder_id BIGINT NOT NULL REFERENCES {schema}.folders (id) ON DELETE CASCADE,
        permission_type VARCHAR(32) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, folder_id)
    );

    CREATE TABLE IF NOT EXISTS {schema}.permission_files (
        id BIGSERIAL PRIMARY KEY,
        user_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        file_id BIGINT NOT NULL REFERENCES {schema}.files (id) ON DELETE CASCADE,
        permission_type VARCHAR(32) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, file_id)
    );

    CREATE TABLE IF NOT EXISTS {schema}.access_requests (
        id BIGSERIAL PRIMARY KEY,
        requester_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        owner_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        folder_id BIGINT REFERENCES {schema}.folders (id),
        file_id BIGINT REFERENCES {schema}.files (id),
        requested_permission_type VARCHAR(32) NOT NULL,
        message VARCHAR(500) NOT NULL DEFAULT '',
        status VARCHAR(16) NOT NULL DEFAULT 'Pending',
        denial_reason TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ,
        CHECK ((folder_id IS NULL) <> (file_id IS NULL))
    );
    CREATE INDEX IF NOT EXISTS idx_access_requests_requester ON {schema}.access_requests (requester_id);
    CREATE INDEX IF NOT EXISTS idx_access_requests_owner ON {schema}.access_requests (owner_id);

    CREATE TABLE IF NOT EXISTS {schema}.public_shares (
        id BIGSERIAL PRIMARY KEY,
        token CHAR(32) NOT NULL UNIQUE,
        owner_id BIGINT NOT NULL REFERENCES {schema}.users (id),
        folder_id BIGINT REFERENCES {schema}.folders (id) ON DELETE CASCADE,
        file_id BIGINT REFERENCES {schema}.files (id) ON DELETE CASCADE,
        permission_type VARCHAR(32) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        expires_at TIMESTAMPTZ NOT NULL,
        CHECK ((folder_id IS NULL) <> (file_id IS NULL))
    );
"""

# ============================================================================
# USER QUERIES
# ============================================================================

USER_GET_BY_ID = """
    SELECT * FROM {schema}.users WHERE id = $1
"""

USER_GET_BY_EMAIL = """
    SELECT * FROM {schema}.users WHERE lower(email) = lower($1)
"""

# ============================================================================
# RESOURCE TREE QUERIES
# ============================================================================

FOLDER_GET_BY_ID = """
    SELECT * FROM {schema}.folders WHERE id = $1
"""

FOLDER_LIST_CHILDREN = """
    SELECT * FROM {schema}.folders WHERE parent_folder_id = $1 ORDER BY id
"""

FOLDER_LIST_BY_OWNER = """
    SELECT * FROM {schema}.folders WHERE owner_id = $1 ORDER BY id
"""

FILE_GET_BY_ID = """
    SELECT * FROM {schema}.files WHERE id = $1
"""

FILE_LIST_BY_FOLDER = """
    SELECT * FROM {schema}.files WHERE folder_id = $1 ORDER BY id
"""

FILE_LIST_BY_OWNER = """
    SELECT * FROM {schema}.files WHERE owner_id = $1 ORDER BY id
"""

# ============================================================================
# PERMISSION GRANT QUERIES
# ============================================================================
# {table} is permission_folders or permission_files, {column} is folder_id
# or file_id. Both come from GRANT_TABLES, never from caller input.

GRANT_TABLES = {
    "Folder": ("permission_folders", "folder_id"),
    "File": ("permission_files", "file_id"),
}

GRANT_UPSERT = """
    INSERT INTO {schema}.{table} (user_id, {column}, permission_type, created_at)
    VALUES ($1, $2, $3, NOW())
    ON CONFLICT (user_id, {column})
    DO UPDATE SET permission_type = EXCLUDED.permission_type
    RETURNING id, user_id, {column} AS resource_id, permission_type, created_at
"""

GRANT_GET_BY_USER_AND_RESOURCE = """
    SELECT id, user_id, {column} AS resource_id, permission_type, created_at
    FROM {schema}.{table}
    WHERE user_id = $1 AND {column} = $2
"""

GRANT_LIST_BY_USER = """
    SELECT id, user_id, {column} AS resource_id, permission_type, created_at
    FROM {schema}.{table}
    WHERE user_id = $1
    ORDER BY id
"""

GRANT_LIST_BY_RESOURCE = """
    SELECT id, user_id, {column} AS resource_id, permission_type, created_at
    FROM {schema}.{table}
    WHERE {column} = $1
    ORDER BY id
"""

GRANT_DELETE = """
    DELETE FROM {schema}.{table} WHERE id = $1
"""

# ============================================================================
# ACCESS REQUEST QUERIES
# ============================================================================

ACCESS_REQUEST_INSERT = """
    INSERT INTO {schema}.access_requests (
        requester_id, owner_id, folder_id, file_id,
        requested_permission_type, message, status,
        denial_reason, created_at, updated_at
    ) VALUES (
        $1, $2, $3, $4,
        $5, $6, $7,
        $8, $9, $10
    )
    RETURNING *
"""

ACCESS_REQUEST_UPDATE = """
    UPDATE {schema}.access_requests SET
        status = $2,
        denial_reason = $3,
        updated_at = $4
    WHERE id = $1
      AND status = 'Pending'
    RETURNING *
"""

ACCESS_REQUEST_GET_BY_ID = """
    SELECT * FROM {schema}.access_requests WHERE id = $1
"""

ACCESS_REQUEST_FIND_PENDING = """
    SELECT * FROM {schema}.access_requests
    WHERE requester_id = $1
      AND folder_id IS NOT DISTINCT FROM $2
      AND file_id IS NOT DISTINCT FROM $3
      AND status = 'Pending'
    LIMIT 1
"""

ACCESS_REQUEST_LIST = """
    SELECT * FROM {schema}.access_requests
    WHERE ($1::BIGINT IS NULL OR requester_id = $1)
      AND ($2::BIGINT IS NULL OR owner_id = $2)
    ORDER BY created_at DESC, id DESC
"""

# ============================================================================
# PUBLIC SHARE QUERIES
# ============================================================================

PUBLIC_SHARE_INSERT = """
    INSERT INTO {schema}.public_shares (
        token, owner_id, folder_id, file_id,
        permission_type, created_at, expires_at
    ) VALUES (
        $1, $2, $3, $4,
        $5, $6, $7
    )
    RETURNING *
"""

PUBLIC_SHARE_GET_BY_TOKEN = """
    SELECT * FROM {schema}.public_shares WHERE token = $1
"""

PUBLIC_SHARE_DELETE = """
    DELETE FROM {schema}.public_shares WHERE id = $1
"""
