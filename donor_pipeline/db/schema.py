"""Table definitions for the scraping tables.

`ensure_schema()` is idempotent (CREATE TABLE IF NOT EXISTS) and is run by
`donor-pipeline init-db`.
"""

from .client import execute_query

TABLES = {
    "scraping_credentials": """
        CREATE TABLE IF NOT EXISTS scraping_credentials (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(255) NOT NULL,
            password VARCHAR(255) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            last_used_at DATETIME NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
        )
    """,
    "scraping_jobs": """
        CREATE TABLE IF NOT EXISTS scraping_jobs (
            id VARCHAR(36) PRIMARY KEY,
            job_type VARCHAR(20) NOT NULL DEFAULT 'incremental',
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            donor_ids JSON NOT NULL,
            total_donors INT NOT NULL DEFAULT 0,
            processed_donors INT NOT NULL DEFAULT 0,
            successful_scrapes INT NOT NULL DEFAULT 0,
            failed_scrapes INT NOT NULL DEFAULT 0,
            error_message TEXT NULL,
            created_by VARCHAR(255) NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            started_at DATETIME NULL,
            completed_at DATETIME NULL,
            INDEX idx_jobs_created (created_at)
        )
    """,
    "scraping_results": """
        CREATE TABLE IF NOT EXISTS scraping_results (
            id VARCHAR(36) PRIMARY KEY,
            job_id VARCHAR(36) NOT NULL,
            donor_id VARCHAR(32) NOT NULL,
            status VARCHAR(20) NOT NULL,
            scraped_data JSON NULL,
            changes_detected JSON NULL,
            error_message TEXT NULL,
            banner_message VARCHAR(255) NULL,
            document_id VARCHAR(64) NULL,
            profile_current_date VARCHAR(64) NULL,
            scraped_at DATETIME(3) NOT NULL DEFAULT CURRENT_TIMESTAMP(3),
            INDEX idx_results_job (job_id),
            INDEX idx_results_donor_status (donor_id, status, scraped_at)
        )
    """,
    "donor_id_list": """
        CREATE TABLE IF NOT EXISTS donor_id_list (
            donor_id VARCHAR(32) PRIMARY KEY,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            last_scraped_at DATETIME NULL,
            last_successful_scrape_at DATETIME NULL,
            consecutive_failures INT NOT NULL DEFAULT 0,
            notes TEXT NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "donor_records": """
        CREATE TABLE IF NOT EXISTS donor_records (
            donor_id VARCHAR(32) PRIMARY KEY,
            name VARCHAR(255) NULL,
            occupation VARCHAR(500) NULL,
            education VARCHAR(500) NULL,
            banner_message VARCHAR(255) NULL,
            inventory_summary VARCHAR(255) NULL,
            document_id VARCHAR(64) NULL,
            profile_current_date VARCHAR(64) NULL,
            compliance_flags JSON NULL,
            inventory_data JSON NULL,
            profile JSON NOT NULL,
            source_url VARCHAR(500) NULL,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
        )
    """,
}


def ensure_schema() -> list[str]:
    """Create any missing tables. Returns the table names in creation order."""
    for ddl in TABLES.values():
        execute_query(ddl, fetch="none")
    return list(TABLES)
