"""
Built-in FHIR R4 record definitions.

These are declarative documents, not code: each one is checked against
schemas.meta.SCHEMA_DEFINITION_SCHEMA and turned into a RecordSchema by
schemas.loader. Field tables are a pragmatic subset of the R4 resources;
extra types can be supplied as JSON through FHIR_SCHEMA_DIR.
"""

UNBOUNDED = "*"

# ---------------------------------------------------------------------------
# Abstract bases
# ---------------------------------------------------------------------------

ELEMENT: dict = {
    "name": "Element",
    "abstract": True,
    "fields": [
        {"name": "id", "type": "string"},
        {"name": "extension", "type": "Extension", "max": UNBOUNDED},
    ],
}

BACKBONE_ELEMENT: dict = {
    "name": "BackboneElement",
    "abstract": True,
    "base": "Element",
    "fields": [
        {"name": "modifierExtension", "type": "Extension", "max": UNBOUNDED, "modifier": True},
    ],
}

RESOURCE: dict = {
    "name": "Resource",
    "abstract": True,
    "fields": [
        {"name": "id", "type": "id"},
        {"name": "meta", "type": "Meta"},
        {"name": "implicitRules", "type": "uri", "modifier": True},
        {"name": "language", "type": "code"},
    ],
}

DOMAIN_RESOURCE: dict = {
    "name": "DomainResource",
    "abstract": True,
    "base": "Resource",
    "fields": [
        {"name": "text", "type": "Narrative"},
        {"name": "contained", "type": "Resource", "max": UNBOUNDED},
        {"name": "extension", "type": "Extension", "max": UNBOUNDED},
        {"name": "modifierExtension", "type": "Extension", "max": UNBOUNDED, "modifier": True},
    ],
}

# ---------------------------------------------------------------------------
# Datatypes
# ---------------------------------------------------------------------------

EXTENSION: dict = {
    "name": "Extension",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "url", "type": "uri", "min": 1},
        {
            "name": "value",
            "choice": [
                {"type": "base64Binary"},
                {"type": "boolean"},
                {"type": "canonical"},
                {"type": "code"},
                {"type": "date"},
                {"type": "dateTime"},
                {"type": "decimal"},
                {"type": "id"},
                {"type": "instant"},
                {"type": "integer"},
                {"type": "markdown"},
                {"type": "positiveInt"},
                {"type": "string"},
                {"type": "time"},
                {"type": "unsignedInt"},
                {"type": "uri"},
                {"type": "url"},
                {"type": "Annotation"},
                {"type": "Attachment"},
                {"type": "CodeableConcept"},
                {"type": "Coding"},
                {"type": "HumanName"},
                {"type": "Identifier"},
                {"type": "Period"},
                {"type": "Quantity"},
                {"type": "Range"},
                {"type": "Reference"},
            ],
        },
    ],
}

CODING: dict = {
    "name": "Coding",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "system", "type": "uri"},
        {"name": "version", "type": "string"},
        {"name": "code", "type": "code"},
        {"name": "display", "type": "string"},
        {"name": "userSelected", "type": "boolean"},
    ],
}

CODEABLE_CONCEPT: dict = {
    "name": "CodeableConcept",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "coding", "type": "Coding", "max": UNBOUNDED},
        {"name": "text", "type": "string"},
    ],
}

PERIOD: dict = {
    "name": "Period",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "start", "type": "dateTime"},
        {"name": "end", "type": "dateTime"},
    ],
}

IDENTIFIER: dict = {
    "name": "Identifier",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {
            "name": "use",
            "type": "code",
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/identifier-use",
                "codes": {
                    "http://hl7.org/fhir/identifier-use": [
                        "usual", "official", "temp", "secondary", "old",
                    ],
                },
            },
        },
        {
            "name": "type",
            "type": "CodeableConcept",
            "binding": {
                "strength": "extensible",
                "valueSet": "http://hl7.org/fhir/ValueSet/identifier-type",
                "codes": {
                    "http://terminology.hl7.org/CodeSystem/v2-0203": [
                        "DL", "PPN", "BRN", "MR", "MCN", "EN", "TAX", "NIIP", "PRN",
                        "MD", "DR", "ACSN", "UDI", "SNO", "SB", "PLAC", "FILL", "JHN",
                    ],
                },
            },
        },
        {"name": "system", "type": "uri"},
        {"name": "value", "type": "string"},
        {"name": "period", "type": "Period"},
        {"name": "assigner", "type": "Reference", "targets": ["Organization"]},
    ],
}

QUANTITY: dict = {
    "name": "Quantity",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "value", "type": "decimal"},
        {
            "name": "comparator",
            "type": "code",
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/quantity-comparator",
                "codes": {"http://hl7.org/fhir/quantity-comparator": ["<", "<=", ">=", ">"]},
            },
        },
        {"name": "unit", "type": "string"},
        {"name": "system", "type": "uri"},
        {"name": "code", "type": "code"},
    ],
}

RANGE: dict = {
    "name": "Range",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "low", "type": "Quantity"},
        {"name": "high", "type": "Quantity"},
    ],
}

ATTACHMENT: dict = {
    "name": "Attachment",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "contentType", "type": "code"},
        {"name": "language", "type": "code"},
        {"name": "data", "type": "base64Binary"},
        {"name": "url", "type": "url"},
        {"name": "size", "type": "unsignedInt"},
        {"name": "hash", "type": "base64Binary"},
        {"name": "title", "type": "string"},
        {"name": "creation", "type": "dateTime"},
    ],
}

ANNOTATION: dict = {
    "name": "Annotation",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {
            "name": "author",
            "choice": [
                {
                    "type": "Reference",
                    "targets": ["Practitioner", "Patient", "RelatedPerson", "Organization"],
                },
                {"type": "string"},
            ],
        },
        {"name": "time", "type": "dateTime"},
        {"name": "text", "type": "markdown", "min": 1},
    ],
}

NARRATIVE: dict = {
    "name": "Narrative",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {
            "name": "status",
            "type": "code",
            "min": 1,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/narrative-status",
                "codes": {
                    "http://hl7.org/fhir/narrative-status": [
                        "generated", "extensions", "additional", "empty",
                    ],
                },
            },
        },
        {"name": "div", "type": "xhtml", "min": 1},
    ],
}

META: dict = {
    "name": "Meta",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {"name": "versionId", "type": "id"},
        {"name": "lastUpdated", "type": "instant"},
        {"name": "source", "type": "uri"},
        {"name": "profile", "type": "canonical", "max": UNBOUNDED},
        {"name": "security", "type": "Coding", "max": UNBOUNDED},
        {"name": "tag", "type": "Coding", "max": UNBOUNDED},
    ],
}

HUMAN_NAME: dict = {
    "name": "HumanName",
    "category": "datatype",
    "base": "Element",
    "fields": [
        {
            "name": "use",
            "type": "code",
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/name-use",
                "codes": {
                    "http://hl7.org/fhir/name-use": [
                        "usual", "official", "temp", "nickname", "anonymous", "old", "maiden",
                    ],
                },
            },
        },
        {"name": "text", "type": "string"},
        {"name": "family", "type": "string"},
        {"name": "given", "type": "string", "max": UNBOUNDED},
        {"name": "prefix", "type": "string", "max": UNBOUNDED},
        {"name": "suffix", "type": "string", "max": UNBOUNDED},
        {"name": "period", "type": "Period"},
    ],
}

# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

APPOINTMENT_STATUS_CODES = [
    "proposed", "pending", "booked", "arrived", "fulfilled",
    "cancelled", "noshow", "entered-in-error", "checked-in", "waitlist",
]

APPOINTMENT: dict = {
    "name": "Appointment",
    "category": "resource",
    "base": "DomainResource",
    "fields": [
        {"name": "identifier", "type": "Identifier", "max": UNBOUNDED},
        {
            "name": "status",
            "type": "code",
            "min": 1,
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/appointmentstatus",
                "codes": {"http://hl7.org/fhir/appointmentstatus": APPOINTMENT_STATUS_CODES},
            },
        },
        {"name": "cancelationReason", "type": "CodeableConcept"},
        {"name": "serviceCategory", "type": "CodeableConcept", "max": UNBOUNDED},
        {"name": "serviceType", "type": "CodeableConcept", "max": UNBOUNDED},
        {"name": "specialty", "type": "CodeableConcept", "max": UNBOUNDED},
        {
            "name": "appointmentType",
            "type": "CodeableConcept",
            "binding": {
                "strength": "preferred",
                "valueSet": "http://terminology.hl7.org/ValueSet/v2-0276",
                "codes": {
                    "http://terminology.hl7.org/CodeSystem/v2-0276": [
                        "CHECKUP", "EMERGENCY", "FOLLOWUP", "ROUTINE", "WALKIN",
                    ],
                },
            },
        },
        {"name": "reasonCode", "type": "CodeableConcept", "max": UNBOUNDED},
        {
            "name": "reasonReference",
            "type": "Reference",
            "max": UNBOUNDED,
            "targets": ["Condition", "Procedure", "Observation", "ImmunizationRecommendation"],
        },
        {"name": "priority", "type": "unsignedInt"},
        {"name": "description", "type": "string"},
        {"name": "supportingInformation", "type": "Reference", "max": UNBOUNDED},
        {"name": "start", "type": "instant"},
        {"name": "end", "type": "instant"},
        {"name": "minutesDuration", "type": "positiveInt"},
        {"name": "slot", "type": "Reference", "max": UNBOUNDED, "targets": ["Slot"]},
        {"name": "created", "type": "dateTime"},
        {"name": "comment", "type": "string"},
        {"name": "patientInstruction", "type": "string"},
        {"name": "basedOn", "type": "Reference", "max": UNBOUNDED, "targets": ["ServiceRequest"]},
        {"name": "participant", "type": "Appointment.Participant", "min": 1, "max": UNBOUNDED},
        {"name": "requestedPeriod", "type": "Period", "max": UNBOUNDED},
    ],
}

APPOINTMENT_PARTICIPANT: dict = {
    "name": "Appointment.Participant",
    "category": "backbone",
    "base": "BackboneElement",
    "fields": [
        {
            "name": "type",
            "type": "CodeableConcept",
            "max": UNBOUNDED,
            "binding": {
                "strength": "extensible",
                "valueSet": "http://hl7.org/fhir/ValueSet/encounter-participant-type",
                "codes": {
                    "http://terminology.hl7.org/CodeSystem/participant-type": [
                        "translator", "emergency",
                    ],
                    "http://terminology.hl7.org/CodeSystem/v3-ParticipationType": [
                        "ADM", "ATND", "CALLBCK", "CON", "DIS", "ESC", "REF", "SPRF", "PPRF", "PART",
                    ],
                },
            },
        },
        {
            "name": "actor",
            "type": "Reference",
            "targets": [
                "Patient", "Practitioner", "PractitionerRole", "RelatedPerson",
                "Device", "HealthcareService", "Location",
            ],
        },
        {
            "name": "required",
            "type": "code",
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/participantrequired",
                "codes": {
                    "http://hl7.org/fhir/participantrequired": [
                        "required", "optional", "information-only",
                    ],
                },
            },
        },
        {
            "name": "status",
            "type": "code",
            "min": 1,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/participationstatus",
                "codes": {
                    "http://hl7.org/fhir/participationstatus": [
                        "accepted", "declined", "tentative", "needs-action",
                    ],
                },
            },
        },
        {"name": "period", "type": "Period"},
    ],
}

DEVICE_REQUEST: dict = {
    "name": "DeviceRequest",
    "category": "resource",
    "base": "DomainResource",
    "fields": [
        {"name": "identifier", "type": "Identifier", "max": UNBOUNDED},
        {"name": "instantiatesCanonical", "type": "canonical", "max": UNBOUNDED},
        {"name": "instantiatesUri", "type": "uri", "max": UNBOUNDED},
        {"name": "basedOn", "type": "Reference", "max": UNBOUNDED},
        {"name": "priorRequest", "type": "Reference", "max": UNBOUNDED},
        {"name": "groupIdentifier", "type": "Identifier"},
        {
            "name": "status",
            "type": "code",
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/request-status",
                "codes": {
                    "http://hl7.org/fhir/request-status": [
                        "draft", "active", "on-hold", "revoked",
                        "completed", "entered-in-error", "unknown",
                    ],
                },
            },
        },
        {
            "name": "intent",
            "type": "code",
            "min": 1,
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/request-intent",
                "codes": {
                    "http://hl7.org/fhir/request-intent": [
                        "proposal", "plan", "directive", "order", "original-order",
                        "reflex-order", "filler-order", "instance-order", "option",
                    ],
                },
            },
        },
        {
            "name": "priority",
            "type": "code",
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/request-priority",
                "codes": {"http://hl7.org/fhir/request-priority": ["routine", "urgent", "asap", "stat"]},
            },
        },
        {
            "name": "code",
            "min": 1,
            "choice": [
                {"type": "Reference", "targets": ["Device"]},
                {"type": "CodeableConcept"},
            ],
        },
        {"name": "parameter", "type": "DeviceRequest.Parameter", "max": UNBOUNDED},
        {
            "name": "subject",
            "type": "Reference",
            "min": 1,
            "targets": ["Patient", "Group", "Location", "Device"],
        },
        {"name": "encounter", "type": "Reference", "targets": ["Encounter"]},
        {"name": "occurrence", "choice": [{"type": "dateTime"}, {"type": "Period"}]},
        {"name": "authoredOn", "type": "dateTime"},
        {
            "name": "requester",
            "type": "Reference",
            "targets": ["Device", "Practitioner", "PractitionerRole", "Organization"],
        },
        {"name": "performerType", "type": "CodeableConcept"},
        {
            "name": "performer",
            "type": "Reference",
            "targets": [
                "Practitioner", "PractitionerRole", "Organization", "CareTeam",
                "HealthcareService", "Patient", "Device", "RelatedPerson",
            ],
        },
        {"name": "reasonCode", "type": "CodeableConcept", "max": UNBOUNDED},
        {
            "name": "reasonReference",
            "type": "Reference",
            "max": UNBOUNDED,
            "targets": ["Condition", "Observation", "DiagnosticReport", "DocumentReference"],
        },
        {
            "name": "insurance",
            "type": "Reference",
            "max": UNBOUNDED,
            "targets": ["Coverage", "ClaimResponse"],
        },
        {"name": "supportingInfo", "type": "Reference", "max": UNBOUNDED},
        {"name": "note", "type": "Annotation", "max": UNBOUNDED},
        {"name": "relevantHistory", "type": "Reference", "max": UNBOUNDED, "targets": ["Provenance"]},
    ],
}

DEVICE_REQUEST_PARAMETER: dict = {
    "name": "DeviceRequest.Parameter",
    "category": "backbone",
    "base": "BackboneElement",
    "fields": [
        {"name": "code", "type": "CodeableConcept"},
        {
            "name": "value",
            "choice": [
                {"type": "CodeableConcept"},
                {"type": "Quantity"},
                {"type": "Range"},
                {"type": "boolean"},
            ],
        },
    ],
}

PATIENT: dict = {
    "name": "Patient",
    "category": "resource",
    "base": "DomainResource",
    "fields": [
        {"name": "identifier", "type": "Identifier", "max": UNBOUNDED},
        {"name": "active", "type": "boolean", "modifier": True},
        {"name": "name", "type": "HumanName", "max": UNBOUNDED},
        {
            "name": "gender",
            "type": "code",
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/administrative-gender",
                "codes": {
                    "http://hl7.org/fhir/administrative-gender": [
                        "male", "female", "other", "unknown",
                    ],
                },
            },
        },
        {"name": "birthDate", "type": "date"},
        {"name": "deceased", "choice": [{"type": "boolean"}, {"type": "dateTime"}], "modifier": True},
        {"name": "multipleBirth", "choice": [{"type": "boolean"}, {"type": "integer"}]},
        {"name": "photo", "type": "Attachment", "max": UNBOUNDED},
        {
            "name": "generalPractitioner",
            "type": "Reference",
            "max": UNBOUNDED,
            "targets": ["Organization", "Practitioner", "PractitionerRole"],
        },
        {"name": "managingOrganization", "type": "Reference", "targets": ["Organization"]},
    ],
}

OBSERVATION: dict = {
    "name": "Observation",
    "category": "resource",
    "base": "DomainResource",
    "fields": [
        {"name": "identifier", "type": "Identifier", "max": UNBOUNDED},
        {
            "name": "status",
            "type": "code",
            "min": 1,
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/observation-status",
                "codes": {
                    "http://hl7.org/fhir/observation-status": [
                        "registered", "preliminary", "final", "amended",
                        "corrected", "cancelled", "entered-in-error", "unknown",
                    ],
                },
            },
        },
        {
            "name": "category",
            "type": "CodeableConcept",
            "max": UNBOUNDED,
            "binding": {
                "strength": "preferred",
                "valueSet": "http://hl7.org/fhir/ValueSet/observation-category",
                "codes": {
                    "http://terminology.hl7.org/CodeSystem/observation-category": [
                        "social-history", "vital-signs", "imaging", "laboratory",
                        "procedure", "survey", "exam", "therapy", "activity",
                    ],
                },
            },
        },
        {"name": "code", "type": "CodeableConcept", "min": 1},
        {
            "name": "subject",
            "type": "Reference",
            "targets": ["Patient", "Group", "Device", "Location"],
        },
        {"name": "encounter", "type": "Reference", "targets": ["Encounter"]},
        {
            "name": "effective",
            "choice": [{"type": "dateTime"}, {"type": "Period"}, {"type": "instant"}],
        },
        {"name": "issued", "type": "instant"},
        {
            "name": "value",
            "choice": [
                {"type": "Quantity"},
                {"type": "CodeableConcept"},
                {"type": "string"},
                {"type": "boolean"},
                {"type": "integer"},
                {"type": "Range"},
                {"type": "time"},
                {"type": "dateTime"},
                {"type": "Period"},
            ],
        },
        {"name": "note", "type": "Annotation", "max": UNBOUNDED},
    ],
}

ENCOUNTER: dict = {
    "name": "Encounter",
    "category": "resource",
    "base": "DomainResource",
    "renames": {"class": "class_"},
    "fields": [
        {"name": "identifier", "type": "Identifier", "max": UNBOUNDED},
        {
            "name": "status",
            "type": "code",
            "min": 1,
            "modifier": True,
            "binding": {
                "strength": "required",
                "valueSet": "http://hl7.org/fhir/ValueSet/encounter-status",
                "codes": {
                    "http://hl7.org/fhir/encounter-status": [
                        "planned", "arrived", "triaged", "in-progress", "onleave",
                        "finished", "cancelled", "entered-in-error", "unknown",
                    ],
                },
            },
        },
        {
            "name": "class",
            "type": "Coding",
            "min": 1,
            "binding": {
                "strength": "extensible",
                "valueSet": "http://terminology.hl7.org/ValueSet/v3-ActEncounterCode",
                "codes": {
                    "http://terminology.hl7.org/CodeSystem/v3-ActCode": [
                        "AMB", "EMER", "FLD", "HH", "IMP", "ACUTE", "NONAC", "OBSENC", "PRENC", "SS", "VR",
                    ],
                },
            },
        },
        {"name": "type", "type": "CodeableConcept", "max": UNBOUNDED},
        {"name": "subject", "type": "Reference", "targets": ["Patient", "Group"]},
        {"name": "participant", "type": "Encounter.Participant", "max": UNBOUNDED},
        {"name": "appointment", "type": "Reference", "max": UNBOUNDED, "targets": ["Appointment"]},
        {"name": "period", "type": "Period"},
        {"name": "reasonCode", "type": "CodeableConcept", "max": UNBOUNDED},
    ],
}

ENCOUNTER_PARTICIPANT: dict = {
    "name": "Encounter.Participant",
    "category": "backbone",
    "base": "BackboneElement",
    "fields": [
        {"name": "type", "type": "CodeableConcept", "max": UNBOUNDED},
        {"name": "period", "type": "Period"},
        {
            "name": "individual",
            "type": "Reference",
            "targets": ["Practitioner", "PractitionerRole", "RelatedPerson"],
        },
    ],
}


BUILTIN_DEFINITIONS: list[dict] = [
    ELEMENT,
    BACKBONE_ELEMENT,
    RESOURCE,
    DOMAIN_RESOURCE,
    EXTENSION,
    CODING,
    CODEABLE_CONCEPT,
    PERIOD,
    IDENTIFIER,
    QUANTITY,
    RANGE,
    ATTACHMENT,
    ANNOTATION,
    NARRATIVE,
    META,
    HUMAN_NAME,
    APPOINTMENT,
    APPOINTMENT_PARTICIPANT,
    DEVICE_REQUEST,
    DEVICE_REQUEST_PARAMETER,
    PATIENT,
    OBSERVATION,
    ENCOUNTER,
    ENCOUNTER_PARTICIPANT,
]
