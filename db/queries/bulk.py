"""
Bulk load SQL templates.

Table and column names are formatted in from the table catalogue, values
go through positional parameters ($1, $2, etc.). Kept separate from the
aiosql .sql files since identifiers vary per table.
"""

# Staging table shaped like the target, dropped at commit
# Format: stage, schema, table
CREATE_STAGE = """
CREATE TEMP TABLE {stage} (LIKE {schema}.{table} INCLUDING DEFAULTS) ON COMMIT DROP
"""

# Load a CSV staged in S3 into the staging table (aws_s3 extension)
# Params: (stage, columns, bucket, key, region)
IMPORT_STAGE_FROM_S3 = """
SELECT aws_s3.table_import_from_s3(
    $1, $2, '(format csv, header true)',
    aws_commons.create_s3_uri($3, $4, $5)
)
"""

# Format: schema, table, columns, stage
INSERT_FROM_STAGE = """
INSERT INTO {schema}.{table} ({columns})
SELECT {columns} FROM {stage}
"""

# Rows repeated inside one file collapse to one before the conflict check
# Format: schema, table, columns, key, stage, conflict
MERGE_FROM_STAGE = """
INSERT INTO {schema}.{table} ({columns})
SELECT DISTINCT ON ({key}) {columns} FROM {stage}
{conflict}
"""

ON_CONFLICT_IGNORE = "ON CONFLICT ({key}) DO NOTHING"

ON_CONFLICT_UPSERT = "ON CONFLICT ({key}) DO UPDATE SET {assignments}"

# Format: schema, table
TRUNCATE_TABLE = "TRUNCATE {schema}.{table} CASCADE"

# Replica role skips FK triggers for the current transaction
DISABLE_FK_CHECKS = "SET LOCAL session_replication_role = replica"
