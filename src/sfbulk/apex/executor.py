"""Anonymous Apex execution through the Apex SOAP API."""

from __future__ import annotations

import re

import structlog
from lxml import etree

from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.exceptions import APIError, ApexExecutionError, ConfigurationError
from sfbulk.core.types import ApexExecutionResult

logger = structlog.get_logger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
APEX_NS = "http://soap.sforce.com/2006/08/apex"
_NS = {"env": SOAP_ENV_NS, "apex": APEX_NS}

_ORG_ID_RE = re.compile(r"/id/(00D\w+)/")


def org_id_from_identity_url(identity_url: str) -> str:
    """Extract the organisation id from an OAuth identity URL.

    The token response's ``id`` looks like
    ``https://login.salesforce.com/id/00Dxx0000001gEREAY/005xx000001Sv6AAAS``.
    """
    match = _ORG_ID_RE.search(identity_url)
    if not match:
        raise ConfigurationError(f"No organisation id in identity URL {identity_url!r}")
    return match.group(1)


def build_envelope(apex_code: str, session_id: str, debug_level: str = "DEBUGONLY") -> bytes:
    """Build the ``executeAnonymous`` request envelope.

    The Apex source is set as element text, so lxml escapes ``<`` and
    ``&`` in the code.
    """
    envelope = etree.Element(
        etree.QName(SOAP_ENV_NS, "Envelope"), nsmap={"env": SOAP_ENV_NS, "apex": APEX_NS}
    )
    header = etree.SubElement(envelope, etree.QName(SOAP_ENV_NS, "Header"))
    session = etree.SubElement(header, etree.QName(APEX_NS, "SessionHeader"))
    etree.SubElement(session, etree.QName(APEX_NS, "sessionId")).text = session_id
    debugging = etree.SubElement(header, etree.QName(APEX_NS, "DebuggingHeader"))
    etree.SubElement(debugging, etree.QName(APEX_NS, "debugLevel")).text = debug_level

    body = etree.SubElement(envelope, etree.QName(SOAP_ENV_NS, "Body"))
    execute = etree.SubElement(body, etree.QName(APEX_NS, "executeAnonymous"))
    etree.SubElement(execute, etree.QName(APEX_NS, "String")).text = apex_code
    return etree.tostring(envelope, xml_declaration=True, encoding="UTF-8")


def _text(node: etree._Element, path: str) -> str | None:
    found = node.find(path, _NS)
    if found is None or found.text is None:
        return None
    return found.text


def _fault_message(root: etree._Element) -> str | None:
    fault = root.find(".//env:Fault", _NS)
    if fault is None:
        return None
    return fault.findtext("faultstring") or fault.findtext("faultcode") or "SOAP fault"


def _fault_from_body(body: object) -> str | None:
    if not isinstance(body, str) or "Fault" not in body:
        return None
    try:
        return _fault_message(etree.fromstring(body.encode("utf-8")))
    except etree.XMLSyntaxError:
        return None


def parse_response(xml: str | bytes) -> ApexExecutionResult:
    """Parse an ``executeAnonymousResponse`` envelope.

    Raises:
        ApexExecutionError: The body is not XML, carries a SOAP fault, or
            has no ``result`` element.
    """
    raw = xml.encode("utf-8") if isinstance(xml, str) else xml
    try:
        root = etree.fromstring(raw)
    except etree.XMLSyntaxError as exc:
        raise ApexExecutionError(f"Unparseable executeAnonymous response: {exc}") from exc

    fault = _fault_message(root)
    if fault is not None:
        raise ApexExecutionError(fault, code="SOAP_FAULT")

    result = root.find(".//apex:executeAnonymousResponse/apex:result", _NS)
    if result is None:
        raise ApexExecutionError("executeAnonymous response has no result element")

    return ApexExecutionResult(
        compiled=_text(result, "apex:compiled") == "true",
        success=_text(result, "apex:success") == "true",
        line=int(_text(result, "apex:line") or -1),
        column=int(_text(result, "apex:column") or -1),
        compile_problem=_text(result, "apex:compileProblem"),
        exception_message=_text(result, "apex:exceptionMessage"),
        exception_stack_trace=_text(result, "apex:exceptionStackTrace"),
        debug_log=_text(root, ".//apex:DebuggingInfo/apex:debugLog"),
    )


class ApexExecutor:
    """Runs anonymous Apex against the connector's org.

    A compile error or uncaught Apex exception is not raised: it is
    reported through ``compiled``/``success`` on the returned result.
    """

    def __init__(self, connector: SalesforceConnector, org_id: str) -> None:
        self._connector = connector
        self._org_id = org_id

    @property
    def soap_path(self) -> str:
        version = self._connector.config.api_version.lstrip("v")
        return f"/services/Soap/s/{version}/{self._org_id}"

    async def execute(self, apex_code: str) -> ApexExecutionResult:
        token = self._connector.config.access_token
        if not token:
            raise ConfigurationError("access_token is required to execute Apex")
        if not apex_code.strip():
            raise ConfigurationError("apex_code must not be empty")

        try:
            body = await self._connector.request(
                "POST",
                self.soap_path,
                content=build_envelope(apex_code, token),
                headers={
                    "Content-Type": "text/xml; charset=utf-8",
                    "SOAPAction": "executeAnonymous",
                    "Accept": "text/xml",
                },
                retry=False,
            )
        except APIError as exc:
            # Salesforce reports SOAP faults with HTTP 500 and an XML body.
            fault = _fault_from_body(exc.details.get("body"))
            if fault is not None:
                raise ApexExecutionError(
                    fault,
                    code="SOAP_FAULT",
                    status_code=exc.status_code,
                ) from exc
            raise

        result = parse_response(body or "")
        logger.info(
            "apex.executed",
            compiled=result.compiled,
            success=result.success,
            line=result.line,
        )
        return result
