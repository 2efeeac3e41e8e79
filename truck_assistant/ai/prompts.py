"""Prompts for truck diagnosis and the repair-assistant chat."""

from truck_assistant.ai.schemas import DiagnosisRequest

DIAGNOSIS_SYSTEM_PROMPT = """You are an expert truck mechanic with over 20 years of experience specializing in commercial vehicle diagnostics and repair. You have extensive knowledge of:

- Heavy-duty diesel engines (Caterpillar, Cummins, Detroit Diesel, PACCAR, Volvo, Mack)
- Emissions systems (DPF, SCR, EGR, DEF)
- Transmission systems (manual, automatic, AMT)
- Air brake systems and pneumatics
- Electrical and electronic systems
- Preventive maintenance schedules
- Safety protocols and OSHA regulations

Provide accurate, practical repair guidance with safety considerations. Always include cost estimates and time requirements.

RULES:
1. Output ONLY valid JSON. No markdown, no conversational text.
2. Be specific. Do not say "Check engine", say "Check the EGR cooler for coolant leaks".
3. If the information is insufficient, say so in "diagnosis" and lower "confidence".

JSON STRUCTURE:
{
  "diagnosis": "Most likely cause and explanation",
  "confidence": number (0-100),
  "repairSteps": ["step 1", "step 2"],
  "requiredTools": ["tool 1", "tool 2"],
  "estimatedTime": "e.g. 2-4 hours",
  "estimatedCost": "e.g. $300-$800",
  "safetyWarnings": ["warning 1"],
  "urgencyLevel": "low | medium | high"
}
"""

CHAT_SYSTEM_PROMPT = (
    "You are a professional truck repair assistant with expertise in "
    "heavy-duty vehicle maintenance and diagnostics. Provide helpful, "
    "accurate, and safety-focused advice. Always recommend professional "
    "inspection for critical issues. Keep responses concise but "
    "comprehensive. Use clear, practical language suitable for truck drivers."
)

DIAGNOSIS_USER_TEMPLATE = """TRUCK INFORMATION:
Make: {make}
Model: {model}
Year: {year}
Engine: {engine}
Mileage: {mileage}

SYMPTOMS:
{symptoms}
{additional_info}
URGENCY LEVEL: {urgency}

Please provide a comprehensive diagnosis including:
1. Most likely causes of the issue
2. Step-by-step repair recommendations
3. Tools required and estimated time
4. Estimated cost range
5. Critical safety warnings
6. Urgency assessment"""


def build_diagnosis_prompt(request: DiagnosisRequest) -> str:
    """Render the user prompt for a diagnosis request."""
    truck = request.truck
    additional = ""
    if request.additional_info:
        additional = f"\nADDITIONAL INFORMATION:\n{request.additional_info}\n"
    return DIAGNOSIS_USER_TEMPLATE.format(
        make=truck.make,
        model=truck.model,
        year=truck.year or "Not specified",
        engine=truck.engine or "Not specified",
        mileage=truck.mileage if truck.mileage is not None else "Not specified",
        symptoms="\n".join(f"- {s}" for s in request.symptoms),
        additional_info=additional,
        urgency=request.urgency,
    )


def build_agent_diagnosis_message(request: DiagnosisRequest) -> str:
    """Agents keep their own instructions, so the JSON contract travels inline."""
    return (
        build_diagnosis_prompt(request)
        + "\n\nRespond ONLY with JSON using the keys diagnosis, confidence, "
        "repairSteps, requiredTools, estimatedTime, estimatedCost, "
        "safetyWarnings and urgencyLevel."
    )
