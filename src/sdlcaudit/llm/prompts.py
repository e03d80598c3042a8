"""Prompt templates and the discriminator routing table."""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class PromptTemplate:
    """A fixed system/user prompt pair with its sampling settings."""

    name: str
    system: str
    user: str
    temperature: float = 0.3
    max_tokens: int = 1500
    timeout_seconds: Optional[int] = None

    def render(self, **variables: str) -> List[Dict[str, str]]:
        """Role-tagged message list for the text-generation service."""
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user.format(**variables)},
        ]


NARRATIVE_TEMPLATE = PromptTemplate(
    name="narrative",
    system=(
        "You are a highly skilled security auditor. Analyze the provided code for security "
        "vulnerabilities, explain the risks clearly, and suggest specific fixes. "
        "Be concise but thorough."
    ),
    user="Analyze this {language} code for security vulnerabilities:\n\n{code}",
    temperature=0.3,
    max_tokens=800,
)

STRIDE_TEMPLATE = PromptTemplate(
    name="STRIDE",
    system="""You are an expert security architect specializing in STRIDE threat modeling. Analyze code and identify threats in these categories:

**STRIDE Framework:**
- **S**poofing: Authentication threats, identity impersonation
- **T**ampering: Data integrity violations, unauthorized modifications
- **R**epudiation: Missing audit trails, non-repudiable actions
- **I**nformation Disclosure: Data leaks, privacy violations
- **D**enial of Service: Resource exhaustion, availability threats
- **E**levation of Privilege: Authorization bypass, privilege escalation

For each threat found:
1. Category (STRIDE letter)
2. Threat description
3. Attack scenario (how it could be exploited)
4. Risk level (Critical/High/Medium/Low)
5. Mitigation strategy

Be specific and actionable. Focus on real threats based on the code patterns.""",
    user=(
        "Perform STRIDE threat modeling on this {language} code:\n\n{code}\n\n"
        "Provide a structured threat analysis with attack scenarios and mitigation recommendations."
    ),
    temperature=0.4,
    max_tokens=1500,
    timeout_seconds=40,
)

PASTA_TEMPLATE = PromptTemplate(
    name="PASTA",
    system="""You are an expert security architect applying PASTA (Process for Attack Simulation and Threat Analysis). Work through the seven stages for the given code:

1. Define business and security objectives
2. Define the technical scope (components, data flows, trust boundaries)
3. Application decomposition (entry points, assets, actors)
4. Threat analysis (relevant threat agents and their goals)
5. Vulnerability analysis (weaknesses visible in the code, with CWE ids where possible)
6. Attack modeling (concrete attack trees or step-by-step attack simulations)
7. Risk and impact analysis (business impact, likelihood, prioritized countermeasures)

Keep each stage focused on what the code actually does. Finish with a prioritized mitigation list.""",
    user=(
        "Perform a PASTA threat analysis on this {language} code:\n\n{code}\n\n"
        "Walk through all seven stages and end with prioritized countermeasures."
    ),
    temperature=0.4,
    max_tokens=1800,
    timeout_seconds=40,
)

DREAD_TEMPLATE = PromptTemplate(
    name="DREAD",
    system="""You are an expert security architect performing DREAD risk assessment. For every threat you identify in the code, score each factor from 0 to 10:

- **D**amage potential: how bad is a successful attack
- **R**eproducibility: how reliably can it be reproduced
- **E**xploitability: how little effort or skill is needed
- **A**ffected users: how many users are impacted
- **D**iscoverability: how easy is it to find

For each threat give the five scores, the average as the overall risk score, a risk rating (Critical >= 8, High >= 6, Medium >= 4, Low otherwise), a short attack scenario and a mitigation. Present the threats as a table sorted by overall score, highest first.""",
    user=(
        "Perform DREAD risk assessment on this {language} code:\n\n{code}\n\n"
        "Score every threat and recommend mitigations."
    ),
    temperature=0.4,
    max_tokens=1500,
    timeout_seconds=40,
)

FIX_TEMPLATE = PromptTemplate(
    name="fix",
    system=(
        "You are a senior secure-code engineer. Rewrite the given code so that every listed "
        "vulnerability is fixed while preserving its behaviour. Return ONLY the complete fixed "
        "code with brief inline comments where something changed. Do not add explanations "
        "outside the code."
    ),
    user=(
        "Fix the security issues in this {language} code.\n\n"
        "Reported issues:\n{vulnerabilities}\n\n"
        "Code:\n{code}"
    ),
    temperature=0.2,
    max_tokens=2048,
)

REPORT_TEMPLATE = PromptTemplate(
    name="report",
    system=(
        "You are a security consultant writing a remediation report for a development team. "
        "Write plain text (no Markdown tables) with these sections: Executive Summary, "
        "Vulnerabilities Found, Fixes Applied, Remaining Risks, Recommendations."
    ),
    user=(
        "Write a security remediation report for this {language} code.\n\n"
        "Reported issues:\n{vulnerabilities}\n\n"
        "Original code:\n{original_code}\n\n"
        "Fixed code:\n{fixed_code}"
    ),
    temperature=0.3,
    max_tokens=2000,
)

THREAT_MODEL_TEMPLATES: Dict[str, PromptTemplate] = {
    "STRIDE": STRIDE_TEMPLATE,
    "PASTA": PASTA_TEMPLATE,
    "DREAD": DREAD_TEMPLATE,
}

TEMPLATES: Dict[str, PromptTemplate] = {
    **THREAT_MODEL_TEMPLATES,
    "FIX": FIX_TEMPLATE,
    "REPORT": REPORT_TEMPLATE,
    "NARRATIVE": NARRATIVE_TEMPLATE,
}

DEFAULT_TEMPLATE = STRIDE_TEMPLATE


def select_template(discriminator: Optional[str]) -> PromptTemplate:
    """Pick the template for a framework or mode. Unknown values get STRIDE."""
    key = (discriminator or "").strip().upper()
    return TEMPLATES.get(key, DEFAULT_TEMPLATE)


def supported_frameworks() -> List[str]:
    return list(THREAT_MODEL_TEMPLATES)


def select_framework(framework: Optional[str]) -> PromptTemplate:
    """Like ``select_template`` but restricted to threat-modeling frameworks."""
    template = select_template(framework)
    if template.name not in THREAT_MODEL_TEMPLATES:
        return DEFAULT_TEMPLATE
    return template
