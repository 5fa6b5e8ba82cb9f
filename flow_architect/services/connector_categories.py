"""Canonical constants for connector categorization.

This module is the single source of truth for category data: the priority
order in which category rules are tried, the name rules themselves, the
per-category role and credential defaults, connector aliases and the
built-in transform steps.

Categorization is first-match-wins over ``CATEGORY_PRIORITY``. A name that
matches several rules (``Milvus vector database`` matches both the
Databases and the Vector Databases rule) always resolves to the category
declared earlier.
"""

from __future__ import annotations

import re

from flow_architect.orchestrator.models.connector import (
    BuiltinTransform,
    ConnectorCategory,
    ConnectorCredentials,
    ConnectorRoles,
)

# ---------------------------------------------------------------------------
# Priority order
# ---------------------------------------------------------------------------

CATEGORY_PRIORITY: tuple[ConnectorCategory, ...] = (
    ConnectorCategory.DATABASES,
    ConnectorCategory.FILE_SYSTEMS,
    ConnectorCategory.STREAMING,
    ConnectorCategory.CRM,
    ConnectorCategory.ECOMMERCE,
    ConnectorCategory.MARKETING_ADVERTISING,
    ConnectorCategory.VECTOR_DATABASES,
    ConnectorCategory.LLMS,
    ConnectorCategory.DATA_AS_A_SERVICE,
    ConnectorCategory.CYBERSECURITY,
    ConnectorCategory.GENERIC_APIS,
    ConnectorCategory.OTHER,
)

# ---------------------------------------------------------------------------
# Name rules (case-insensitive). OTHER has no rule: it is the fallback.
# Short tokens are word-bounded so "Pipedrive" is not a drive and
# "Pinterest" is not a REST API.
# ---------------------------------------------------------------------------

_RULE_SOURCES: dict[ConnectorCategory, str] = {
    ConnectorCategory.DATABASES: (
        r"sql|db2|sybase|alloydb|bigquery|snowflake|teradata|mongodb|dynamodb"
        r"|elasticsearch|oracle|\bdatabase\b"
    ),
    ConnectorCategory.FILE_SYSTEMS: (
        r"\bs3\b|storage|\bdrive\b|dropbox|\bbox\b|webdav|sharepoint|ftp"
    ),
    ConnectorCategory.STREAMING: r"kafka|pub ?sub|kinesis|\bjms\b|\bems\b",
    ConnectorCategory.CRM: (
        r"salesforce|hubspot|zoho|zendesk|capsule|pipedrive|freshsales"
        r"|\bcopper\b|\bcrm\b"
    ),
    ConnectorCategory.ECOMMERCE: (
        r"shopify|magento|big ?commerce|commerce cloud|mirakl|walmart"
    ),
    ConnectorCategory.MARKETING_ADVERTISING: (
        r"\bads\b|advertising|\bdsp\b|criteo|trade ?desk|mailchimp"
    ),
    ConnectorCategory.VECTOR_DATABASES: r"pinecone|weaviate|qdrant|vespa|milvus|\bvector\b",
    ConnectorCategory.LLMS: (
        r"\bopen ?ai\b|anthropic|gemini|mistral|together ai|\bgrok\b|perplexity"
        r"|nvidia ai|azure ai|\bllms?\b"
    ),
    ConnectorCategory.DATA_AS_A_SERVICE: (
        r"data\.world|crunchbase|openweather|news api|\bfda\b|collibra"
        r"|hightouch|reltio|usajobs|looker"
    ),
    ConnectorCategory.CYBERSECURITY: (
        r"security|cyber|virustotal|zscaler|netskope|proofpoint|fingerbank"
    ),
    ConnectorCategory.GENERIC_APIS: r"\brest\b|graphql|\bsoap\b|webhook",
}

CATEGORY_RULES: tuple[tuple[ConnectorCategory, re.Pattern[str]], ...] = tuple(
    (category, re.compile(_RULE_SOURCES[category], re.IGNORECASE))
    for category in CATEGORY_PRIORITY
    if category in _RULE_SOURCES
)


def categorize(name: str) -> ConnectorCategory:
    """Derive a connector's category from its display name.

    Pure and total: every string maps to exactly one category.

    Args:
        name: Connector display name (any casing).

    Returns:
        The first category in ``CATEGORY_PRIORITY`` whose rule matches,
        or ``ConnectorCategory.OTHER``.
    """
    for category, pattern in CATEGORY_RULES:
        if pattern.search(name):
            return category
    return ConnectorCategory.OTHER


# ---------------------------------------------------------------------------
# Category defaults: allowed roles and credential fields
# ---------------------------------------------------------------------------

_BOTH = ConnectorRoles(source=True, destination=True)
_SOURCE_ONLY = ConnectorRoles(source=True, destination=False)
_DESTINATION_ONLY = ConnectorRoles(source=False, destination=True)

CATEGORY_ROLES: dict[ConnectorCategory, ConnectorRoles] = {
    ConnectorCategory.DATABASES: _BOTH,
    ConnectorCategory.FILE_SYSTEMS: _BOTH,
    ConnectorCategory.STREAMING: _BOTH,
    ConnectorCategory.CRM: _BOTH,
    ConnectorCategory.ECOMMERCE: _BOTH,
    ConnectorCategory.MARKETING_ADVERTISING: _BOTH,
    ConnectorCategory.VECTOR_DATABASES: _BOTH,
    ConnectorCategory.LLMS: _DESTINATION_ONLY,
    ConnectorCategory.DATA_AS_A_SERVICE: _SOURCE_ONLY,
    ConnectorCategory.CYBERSECURITY: _SOURCE_ONLY,
    ConnectorCategory.GENERIC_APIS: _BOTH,
    ConnectorCategory.OTHER: _BOTH,
}

CATEGORY_CREDENTIALS: dict[ConnectorCategory, ConnectorCredentials] = {
    ConnectorCategory.DATABASES: ConnectorCredentials(
        mandatory=("host/account", "user", "password or key", "database/schema"),
        optional=("warehouse", "role", "ssl"),
    ),
    ConnectorCategory.FILE_SYSTEMS: ConnectorCredentials(
        mandatory=("endpoint/bucket", "auth"),
        optional=("region", "path/prefix"),
    ),
    ConnectorCategory.STREAMING: ConnectorCredentials(
        mandatory=("broker/endpoint", "topic/stream", "auth"),
        optional=("tls/sasl",),
    ),
    ConnectorCategory.CRM: ConnectorCredentials(
        mandatory=("baseUrl/loginUrl", "clientId", "clientSecret", "user", "token/password"),
        optional=("instance",),
    ),
    ConnectorCategory.ECOMMERCE: ConnectorCredentials(
        mandatory=("storeDomain", "apiKey/token"),
        optional=("apiVersion",),
    ),
    ConnectorCategory.MARKETING_ADVERTISING: ConnectorCredentials(
        mandatory=("accessToken/apiKey", "accountId"),
        optional=("clientId", "clientSecret"),
    ),
    ConnectorCategory.VECTOR_DATABASES: ConnectorCredentials(
        mandatory=("endpoint/host", "apiKey", "index/collection"),
    ),
    ConnectorCategory.LLMS: ConnectorCredentials(
        mandatory=("apiKey", "model"),
        optional=("endpoint",),
    ),
    ConnectorCategory.DATA_AS_A_SERVICE: ConnectorCredentials(
        mandatory=("apiKey",),
        optional=("baseUrl", "accountId"),
    ),
    ConnectorCategory.CYBERSECURITY: ConnectorCredentials(
        mandatory=("apiKey",),
        optional=("baseUrl",),
    ),
    ConnectorCategory.GENERIC_APIS: ConnectorCredentials(
        mandatory=("baseUrl", "auth"),
        optional=("headers", "params"),
    ),
    ConnectorCategory.OTHER: ConnectorCredentials(
        mandatory=("baseUrl or host", "auth"),
    ),
}

# ---------------------------------------------------------------------------
# Aliases (casefolded alias -> catalog name)
# ---------------------------------------------------------------------------

CONNECTOR_ALIASES: dict[str, str] = {
    "bq": "Google BigQuery",
    "bigquery": "Google BigQuery",
    "big query": "Google BigQuery",
    "sf": "Salesforce",
    "sfdc": "Salesforce",
    "postgres": "PostgreSQL",
    "postgresql": "PostgreSQL",
    "pg": "PostgreSQL",
    "s3": "Amazon S3",
    "aws s3": "Amazon S3",
    "gcs": "Google Cloud Storage",
    "sql server": "Microsoft SQLServer",
    "mssql": "Microsoft SQLServer",
    "oracle": "Oracle Database",
    "mongo": "MongoDB",
    "pubsub": "Google Pub Sub",
    "kinesis": "AWS Kinesis Firehose",
    "openai": "Open AI",
    "chatgpt": "Open AI",
    "claude": "Anthropic AI",
    "gemini": "Google Gemini",
    "sheets": "Google Sheets",
}

# ---------------------------------------------------------------------------
# Built-in transforms
# ---------------------------------------------------------------------------

BUILTIN_TRANSFORMS: tuple[BuiltinTransform, ...] = (
    BuiltinTransform(name="Map & Validate", description="Map source columns onto the destination schema and validate types"),
    BuiltinTransform(name="Cleanse", description="Trim, deduplicate and normalize records"),
    BuiltinTransform(name="Enrich & Map", description="Add derived attributes, then map onto the destination schema"),
    BuiltinTransform(name="Data Analysis", description="Profile records as they pass through"),
)

# Words that ask for "a transform, details later"
PLACEHOLDER_TRANSFORM_WORDS: frozenset[str] = frozenset({
    "dummy", "placeholder", "generic", "unspecified", "tbd", "later", "kk",
    "any", "transform", "something",
})
