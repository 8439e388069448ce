"""Extraction of schema models from SQL DDL scripts."""

from ddl.extractor import parse_sql, split_top_level, sql_to_dsl, sql_to_schema

__all__ = ["parse_sql", "split_top_level", "sql_to_dsl", "sql_to_schema"]
