"""
storage/sample_questions.py — 기본 제공 샘플 문제 (영역당 3문제)

외부 문제 은행 없이도 앱을 바로 실행해 볼 수 있도록 한다.
"""

from typing import List

from data_engineer_cbt.models.question_model import Question

_DOCS = "https://docs.databricks.com"

SAMPLE_QUESTIONS: List[Question] = [
    # ── Databricks Lakehouse Platform ────────────────────────────────────────
    Question(
        id="q_dlp_001",
        topic="Databricks Lakehouse Platform",
        subtopic="Architecture Overview",
        difficulty="easy",
        question_text="What is the primary storage format used by Delta Lake in the Databricks Lakehouse Platform?",
        options=["Parquet files with transaction logs", "JSON files with metadata",
                 "Avro files with schemas", "ORC files with indexes"],
        correct_answer=0,
        explanation="Delta Lake stores data as Parquet files combined with a transaction log that provides ACID guarantees.",
        documentation_links=[f"{_DOCS}/delta/index.html"],
        tags=["delta-lake", "parquet", "architecture"],
    ),
    Question(
        id="q_dlp_002",
        topic="Databricks Lakehouse Platform",
        subtopic="Compute Resources",
        difficulty="medium",
        question_text="Which cluster type is most appropriate for interactive data exploration and ad-hoc analysis?",
        options=["All-purpose clusters", "Job clusters", "SQL warehouses", "Instance pools"],
        correct_answer=0,
        explanation="All-purpose clusters are built for interactive work and stay up until terminated, shared by notebooks and users.",
        documentation_links=[f"{_DOCS}/clusters/index.html"],
        tags=["clusters", "compute", "interactive"],
    ),
    Question(
        id="q_dlp_003",
        topic="Databricks Lakehouse Platform",
        subtopic="Unity Catalog",
        difficulty="hard",
        question_text="In Unity Catalog, what is the correct hierarchy for organizing data assets?",
        options=["Metastore > Catalog > Schema > Table", "Workspace > Catalog > Database > Table",
                 "Catalog > Database > Schema > Table", "Metastore > Database > Schema > Table"],
        correct_answer=0,
        explanation="Unity Catalog uses the metastore as the top level, then a three-level namespace of catalog, schema and table.",
        documentation_links=[f"{_DOCS}/data-governance/unity-catalog/index.html"],
        tags=["unity-catalog", "governance", "hierarchy"],
    ),
    # ── ELT with Spark SQL and Python ────────────────────────────────────────
    Question(
        id="q_elt_001",
        topic="ELT with Spark SQL and Python",
        subtopic="DataFrame Operations",
        difficulty="easy",
        question_text="Which method removes duplicate rows from a DataFrame in PySpark, optionally by a subset of columns?",
        code_example='df = spark.table("source_table")\nresult = df._____()',
        options=["distinct()", "dropDuplicates()", "unique()", "deduplicate()"],
        correct_answer=1,
        explanation="dropDuplicates() removes duplicate rows and, unlike distinct(), accepts a list of columns to compare.",
        documentation_links=["https://spark.apache.org/docs/latest/api/python/index.html"],
        tags=["pyspark", "dataframe", "deduplication"],
    ),
    Question(
        id="q_elt_002",
        topic="ELT with Spark SQL and Python",
        subtopic="SQL Functions",
        difficulty="medium",
        question_text="What is the standard Spark SQL function for extracting a value from a JSON string column?",
        code_example="SELECT customer_id, json_data FROM orders",
        options=["json_extract(json_data, '$.name')", "get_json_object(json_data, '$.name')",
                 "parse_json(json_data).name", "json_data.name"],
        correct_answer=1,
        explanation="get_json_object() takes a JSON string column and a JSONPath expression and returns the matching value.",
        documentation_links=["https://spark.apache.org/docs/latest/api/sql/index.html"],
        tags=["spark-sql", "json", "parsing"],
    ),
    Question(
        id="q_elt_003",
        topic="ELT with Spark SQL and Python",
        subtopic="Window Functions",
        difficulty="hard",
        question_text="Which window function assigns a unique sequential number to rows within each partition?",
        code_example="SELECT *, _____ OVER (PARTITION BY department ORDER BY salary DESC) AS rank_num FROM employees",
        options=["ROW_NUMBER()", "RANK()", "DENSE_RANK()", "NTILE()"],
        correct_answer=0,
        explanation="ROW_NUMBER() numbers rows from 1 within each partition and never produces ties, unlike RANK().",
        documentation_links=["https://spark.apache.org/docs/latest/sql-ref-functions-builtin.html"],
        tags=["window-functions", "ranking", "spark-sql"],
    ),
    # ── Incremental Data Processing ──────────────────────────────────────────
    Question(
        id="q_idp_001",
        topic="Incremental Data Processing",
        subtopic="Structured Streaming",
        difficulty="easy",
        question_text="What is the default output mode for Structured Streaming when writing to a Delta table?",
        options=["append", "complete", "update", "overwrite"],
        correct_answer=0,
        explanation="Append is the default output mode: only new rows produced since the last trigger are written to the sink.",
        documentation_links=[f"{_DOCS}/structured-streaming/index.html"],
        tags=["structured-streaming", "output-modes", "delta"],
    ),
    Question(
        id="q_idp_002",
        topic="Incremental Data Processing",
        subtopic="Change Data Capture",
        difficulty="medium",
        question_text="Which Delta Lake feature tracks row-level changes made to a table over time for CDC workflows?",
        options=["Change Data Feed", "Time Travel", "Schema Evolution", "Optimize"],
        correct_answer=0,
        explanation="Change Data Feed records inserts, updates and deletes per row so downstream jobs can consume only the changes.",
        documentation_links=[f"{_DOCS}/delta/delta-change-data-feed.html"],
        tags=["cdc", "change-data-feed", "delta-lake"],
    ),
    Question(
        id="q_idp_003",
        topic="Incremental Data Processing",
        subtopic="Merge Operations",
        difficulty="hard",
        question_text="What happens to a source row with no target match when MERGE has no WHEN NOT MATCHED clause?",
        code_example="MERGE INTO target t USING source s ON t.id = s.id\nWHEN MATCHED THEN UPDATE SET *",
        options=["The row is inserted into target", "The row is ignored",
                 "An error is thrown", "The operation is rolled back"],
        correct_answer=1,
        explanation="MERGE only applies the clauses that are defined, so unmatched source rows are skipped without error.",
        documentation_links=[f"{_DOCS}/delta/merge.html"],
        tags=["merge", "upsert", "delta-lake"],
    ),
    # ── Production Pipelines ─────────────────────────────────────────────────
    Question(
        id="q_pp_001",
        topic="Production Pipelines",
        subtopic="Delta Live Tables",
        difficulty="easy",
        question_text="Which decorator is used to define a Delta Live Tables dataset in Python?",
        options=["@dlt.table", "@delta.table", "@live.table", "@pipeline.table"],
        correct_answer=0,
        explanation="@dlt.table declares a table whose creation, updates and dependencies are managed by the pipeline.",
        documentation_links=[f"{_DOCS}/delta-live-tables/index.html"],
        tags=["delta-live-tables", "decorators", "python"],
    ),
    Question(
        id="q_pp_002",
        topic="Production Pipelines",
        subtopic="Job Scheduling",
        difficulty="medium",
        question_text="What is the recommended approach for handling task failures in Databricks Workflows?",
        options=["Configure retry policies and notifications", "Wrap all code in try/except blocks",
                 "Schedule jobs more frequently", "Disable error handling"],
        correct_answer=0,
        explanation="Workflows provide built-in retries, timeouts and notifications for infrastructure-level failures.",
        documentation_links=[f"{_DOCS}/workflows/index.html"],
        tags=["workflows", "error-handling", "scheduling"],
    ),
    Question(
        id="q_pp_003",
        topic="Production Pipelines",
        subtopic="Data Quality",
        difficulty="hard",
        question_text="In Delta Live Tables, what is the purpose of expectations such as @dlt.expect?",
        code_example='@dlt.table\n@dlt.expect("valid_email", "email IS NOT NULL")\ndef clean_data():\n    return dlt.read("raw_data")',
        options=["Declare data quality constraints", "Handle exceptions",
                 "Optimize performance", "Evolve schemas"],
        correct_answer=0,
        explanation="Expectations declare data quality constraints whose violations are recorded, dropped or fail the update.",
        documentation_links=[f"{_DOCS}/delta-live-tables/expectations.html"],
        tags=["delta-live-tables", "data-quality", "expectations"],
    ),
    # ── Data Governance ──────────────────────────────────────────────────────
    Question(
        id="q_dg_001",
        topic="Data Governance",
        subtopic="Access Control",
        difficulty="easy",
        question_text="Which Unity Catalog privilege is required to read data from a table?",
        options=["SELECT", "READ", "ACCESS", "VIEW"],
        correct_answer=0,
        explanation="SELECT grants the ability to read tables and views, following standard SQL privilege names.",
        documentation_links=[f"{_DOCS}/data-governance/unity-catalog/manage-privileges/index.html"],
        tags=["unity-catalog", "privileges", "access-control"],
    ),
    Question(
        id="q_dg_002",
        topic="Data Governance",
        subtopic="Data Lineage",
        difficulty="medium",
        question_text="How does Unity Catalog capture data lineage information?",
        options=["By tracking queries as they execute", "By manual annotation in notebooks",
                 "Through external lineage tools only", "By scanning file system metadata"],
        correct_answer=0,
        explanation="Unity Catalog records lineage automatically from executed queries, down to the column level.",
        documentation_links=[f"{_DOCS}/data-governance/unity-catalog/data-lineage.html"],
        tags=["unity-catalog", "lineage", "governance"],
    ),
    Question(
        id="q_dg_003",
        topic="Data Governance",
        subtopic="Data Classification",
        difficulty="hard",
        question_text="What is the main purpose of column-level tags in Unity Catalog?",
        options=["Classify sensitive data for governance", "Improve query performance",
                 "Enable schema evolution", "Reduce storage costs"],
        correct_answer=0,
        explanation="Column tags classify sensitive data such as PII so that governance rules can target it.",
        documentation_links=[f"{_DOCS}/data-governance/unity-catalog/tags.html"],
        tags=["unity-catalog", "tags", "classification"],
    ),
]
