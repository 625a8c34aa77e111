import time
from typing import Any, Dict, Optional

import httpx
from lxml import etree

from journalflow.core.config import CrossrefConfig


def split_name(full_name: str) -> tuple[str, str]:
    """
    "Ada King Lovelace" -> ("Ada King", "Lovelace")；单个词时 given/family 相同。
    """
    parts = (full_name or "").strip().split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], parts[0]
    return " ".join(parts[:-1]), parts[-1]


CROSSREF_NS = "http://www.crossref.org/schema/5.3.1"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{CROSSREF_NS} https://www.crossref.org/schemas/crossref5.3.1.xsd"


def _q(tag: str) -> str:
    return f"{{{CROSSREF_NS}}}{tag}"


class CrossrefClient:
    """
    Crossref Deposit API client

    - generate_xml: 生成 doi_batch 元数据 XML
    - submit_deposit: 以 multipart 方式提交到 doMDUpload
    """

    def __init__(
        self,
        config: Optional[CrossrefConfig] = None,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.config = config or CrossrefConfig.from_env()
        self.username = username
        self.password = password

    def generate_xml(self, article_data: Dict[str, Any], *, journal_name: str, site_url: str = "") -> bytes:
        """
        Generate Crossref deposit XML for one article.

        article_data keys: doi, title, published_at (ISO), authors [{name, affiliation}]
        (first entry is the submitting author).
        """
        doi = str(article_data.get("doi") or "")
        now_ms = int(time.time() * 1000)

        root = etree.Element(_q("doi_batch"), nsmap={None: CROSSREF_NS, "xsi": XSI_NS}, version="5.3.1")
        root.set(f"{{{XSI_NS}}}schemaLocation", SCHEMA_LOCATION)

        # 1. Head
        head = etree.SubElement(root, _q("head"))
        batch_id = "".join(ch if ch.isalnum() else "_" for ch in doi)
        etree.SubElement(head, _q("doi_batch_id")).text = f"{batch_id}_{now_ms}"
        etree.SubElement(head, _q("timestamp")).text = str(now_ms)
        depositor = etree.SubElement(head, _q("depositor"))
        etree.SubElement(depositor, _q("depositor_name")).text = journal_name
        etree.SubElement(depositor, _q("email_address")).text = self.config.depositor_email
        etree.SubElement(head, _q("registrant")).text = journal_name

        # 2. Body
        body = etree.SubElement(root, _q("body"))
        journal = etree.SubElement(body, _q("journal"))
        j_meta = etree.SubElement(journal, _q("journal_metadata"))
        etree.SubElement(j_meta, _q("full_title")).text = journal_name

        j_article = etree.SubElement(journal, _q("journal_article"), publication_type="full_text")
        titles = etree.SubElement(j_article, _q("titles"))
        etree.SubElement(titles, _q("title")).text = str(article_data.get("title") or "")

        authors = [a for a in (article_data.get("authors") or []) if str(a.get("name") or "").strip()]
        if authors:
            contributors = etree.SubElement(j_article, _q("contributors"))
            for idx, author in enumerate(authors):
                person = etree.SubElement(
                    contributors,
                    _q("person_name"),
                    sequence="first" if idx == 0 else "additional",
                    contributor_role="author",
                )
                given, family = split_name(author["name"])
                etree.SubElement(person, _q("given_name")).text = given
                etree.SubElement(person, _q("surname")).text = family
                if author.get("affiliation"):
                    etree.SubElement(person, _q("affiliation")).text = author["affiliation"]

        # Publication date (YYYY-MM-DD prefix of the ISO timestamp)
        published = str(article_data.get("published_at") or "")[:10]
        date_parts = published.split("-") if published else []
        if len(date_parts) == 3:
            pub_date = etree.SubElement(j_article, _q("publication_date"), media_type="online")
            etree.SubElement(pub_date, _q("month")).text = date_parts[1]
            etree.SubElement(pub_date, _q("day")).text = date_parts[2]
            etree.SubElement(pub_date, _q("year")).text = date_parts[0]

        doi_data = etree.SubElement(j_article, _q("doi_data"))
        etree.SubElement(doi_data, _q("doi")).text = doi
        etree.SubElement(doi_data, _q("resource")).text = f"{site_url.rstrip('/')}/archive/{doi}"

        return etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8")

    async def submit_deposit(self, xml_content: bytes, file_name: str = "deposit.xml") -> str:
        """
        Submit XML to the Crossref deposit endpoint.
        """
        if not (self.username and self.password):
            raise ValueError("Crossref credentials missing")

        params = {
            "operation": "doMDUpload",
            "login_id": self.username,
            "login_passwd": self.password,
        }
        files = {"fname": (file_name, xml_content, "application/xml")}

        async with httpx.AsyncClient() as client:
            response = await client.post(self.config.api_url, data=params, files=files, timeout=60.0)
            response.raise_for_status()
            return response.text
