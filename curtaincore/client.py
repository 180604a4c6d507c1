import io
import json
import logging
from typing import Dict, List, Optional

import pandas as pd
import requests
from uniprotparser.betaparser import UniprotParser, UniprotSequence

from curtaincore.ingest import CurtainSession, session_from_payload
from curtaincore.models import Row
from curtaincore.uniprot import normalize_record

logger = logging.getLogger(__name__)

UNIPROT_COLUMNS = "accession,id,gene_names,protein_name,organism_name,organism_id,length,cc_subcellular_location,sequence,ft_var_seq,cc_alternative_products,ft_domain,ft_mod_res,cc_function,ft_mutagen"


class CurtainClient:
    def __init__(self, base_url: str, api_key: str = ""):
        """
        Initialize Curtain client for API interaction.

        Args:
            base_url: Base URL for Curtain API
            api_key: Optional API key for authentication
        """
        self.base_url = base_url.rstrip("/")
        self.request_session = requests.Session()
        self.api_key = api_key

    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authentication headers if API key is provided"""
        return {"X-Api-Key": self.api_key} if self.api_key else {}

    def download_curtain_session(self, link_id: str, token: str = "") -> Optional[Dict]:
        """
        Download Curtain session data.

        Large sessions are served through a signed URL; the first response then
        only holds ``{"url": ...}`` and the payload is fetched from there.

        Args:
            link_id: ID of the session to download
            token: Optional access token

        Returns:
            Session payload, or None if the download fails
        """
        link = f"{self.base_url}/curtain/{link_id}/download/token={token}/"
        headers = self._get_auth_headers()
        try:
            req = self.request_session.get(link, headers=headers)
            req.raise_for_status()
            data = req.json()
            if isinstance(data, dict) and "url" in data:
                result = self.request_session.get(data["url"])
                result.raise_for_status()
                data = result.json()
        except (requests.exceptions.RequestException, json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Could not download session {link_id}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Session {link_id} is not a JSON object")
            return None
        return data

    def fetch_session(self, link_id: str, token: str = "") -> Optional[CurtainSession]:
        payload = self.download_curtain_session(link_id, token)
        if payload is None:
            return None
        return session_from_payload(payload)

    def fetch_rows(self, link_id: str, token: str = "") -> List[Row]:
        """Differential rows of a stored session; empty if it cannot be fetched or read."""
        session = self.fetch_session(link_id, token)
        if session is None:
            return []
        try:
            return session.differential_rows()
        except (ValueError, pd.errors.ParserError) as e:
            logger.warning(f"Could not read differential data of session {link_id}: {e}")
            return []

    def fetch_uniprot_record(self, accession: str) -> Optional[Dict]:
        """
        Look up one protein on UniProt.

        Args:
            accession: UniProt accession, an isoform or an entry name with a prefix

        Returns:
            The normalized record, or None if UniProt has nothing for it
        """
        us = UniprotSequence(accession, True)
        acc = us.accession or accession
        parser = UniprotParser(columns=UNIPROT_COLUMNS)
        try:
            for res in parser.parse([acc], 5000):
                if not res:
                    continue
                df = pd.read_csv(io.StringIO(res), sep="\t")
                if df.empty:
                    continue
                return normalize_record(df.iloc[0].to_dict())
        except (requests.exceptions.RequestException, ValueError, pd.errors.ParserError) as e:
            logger.warning(f"UniProt lookup failed for {accession}: {e}")
            return None
        logger.warning(f"UniProt has no record for {accession}")
        return None
