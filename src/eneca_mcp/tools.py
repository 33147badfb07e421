"""Shared MCP tool definitions for Eneca.

This module provides the definitive list of MCP tools used by both stdio and SSE transports.
Every tool takes names, not ids: the handlers resolve them and report NotFound or
ambiguity back to the caller.
"""

from mcp.types import Tool

DATE_HINT = "Date in dd.mm.yyyy format"

_PAGINATION = {
    "limit": {
        "type": "integer",
        "description": "Maximum number of results (default: 10)"
    },
    "offset": {
        "type": "integer",
        "description": "Number of results to skip (default: 0)"
    },
}


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for Eneca project management."""
    return [
        # ============================================================================
        # Project Tools
        # ============================================================================
        Tool(
            name="create_project",
            description="Create a new project. Project names are unique. "
                       "Manager and lead engineer are looked up by name or email.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_name": {"type": "string", "description": "Project name"},
                    "project_description": {"type": "string", "description": "Project description"},
                    "manager_name": {"type": "string", "description": "Project manager (name or email)"},
                    "lead_engineer_name": {"type": "string", "description": "Lead engineer (name or email)"},
                    "client_name": {"type": "string", "description": "Client name"},
                    "project_status": {
                        "type": "string",
                        "description": "Status: active, archived, paused, canceled (default: active)"
                    }
                },
                "required": ["project_name"]
            }
        ),
        Tool(
            name="search_projects",
            description="Search projects by name fragment, manager and status. "
                       "Common pattern: search_projects() → search_stages(project_name=...).",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_name": {"type": "string", "description": "Name fragment (case-insensitive)"},
                    "manager_name": {"type": "string", "description": "Filter by manager (name or email)"},
                    "project_status": {"type": "string", "description": "Filter by status"},
                    **_PAGINATION
                }
            }
        ),
        Tool(
            name="update_project",
            description="Update a project found by its exact current name. "
                       "Only the supplied fields change.",
            inputSchema={
                "type": "object",
                "properties": {
                    "current_name": {"type": "string", "description": "Exact current project name"},
                    "new_name": {"type": "string", "description": "New project name"},
                    "project_description": {"type": "string", "description": "New description"},
                    "manager_name": {"type": "string", "description": "New manager (name or email)"},
                    "lead_engineer_name": {"type": "string", "description": "New lead engineer (name or email)"},
                    "client_name": {"type": "string", "description": "New client name"},
                    "project_status": {"type": "string", "description": "New status"}
                },
                "required": ["current_name"]
            }
        ),
        Tool(
            name="delete_project",
            description="Delete a project found by its exact name. Refused while the project has "
                       "stages, objects or sections unless cascade=true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_name": {"type": "string", "description": "Exact project name"},
                    "cascade": {
                        "type": "boolean",
                        "description": "Also delete all stages, objects and sections (default: false)"
                    }
                },
                "required": ["project_name"]
            }
        ),

        # ============================================================================
        # Stage Tools
        # ============================================================================
        Tool(
            name="create_stage",
            description="Create a stage in a project. Stage names are unique within a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_name": {"type": "string", "description": "Stage name"},
                    "project_name": {"type": "string", "description": "Project the stage belongs to"},
                    "stage_description": {"type": "string", "description": "Stage description"}
                },
                "required": ["stage_name", "project_name"]
            }
        ),
        Tool(
            name="search_stages",
            description="Search stages by name fragment, optionally within a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_name": {"type": "string", "description": "Name fragment (case-insensitive)"},
                    "project_name": {"type": "string", "description": "Restrict to this project"},
                    **_PAGINATION
                }
            }
        ),
        Tool(
            name="update_stage",
            description="Rename a stage or change its description. The stage is found by its exact "
                       "current name within the project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "current_name": {"type": "string", "description": "Exact current stage name"},
                    "project_name": {"type": "string", "description": "Project the stage belongs to"},
                    "new_name": {"type": "string", "description": "New stage name"},
                    "stage_description": {"type": "string", "description": "New description"}
                },
                "required": ["current_name", "project_name"]
            }
        ),
        Tool(
            name="delete_stage",
            description="Delete a stage. Refused while it has objects unless cascade=true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "stage_name": {"type": "string", "description": "Exact stage name"},
                    "project_name": {"type": "string", "description": "Project the stage belongs to"},
                    "cascade": {"type": "boolean", "description": "Also delete objects and their sections"}
                },
                "required": ["stage_name", "project_name"]
            }
        ),

        # ============================================================================
        # Object Tools
        # ============================================================================
        Tool(
            name="create_object",
            description="Create an object in a stage. Object names are unique within a stage.",
            inputSchema={
                "type": "object",
                "properties": {
                    "object_name": {"type": "string", "description": "Object name"},
                    "project_name": {"type": "string", "description": "Project name"},
                    "stage_name": {"type": "string", "description": "Stage name within the project"},
                    "object_description": {"type": "string", "description": "Object description"},
                    "responsible_name": {"type": "string", "description": "Responsible person (name or email)"},
                    "start_date": {"type": "string", "description": f"Start date. {DATE_HINT}"},
                    "end_date": {"type": "string", "description": f"End date. {DATE_HINT}"}
                },
                "required": ["object_name", "project_name", "stage_name"]
            }
        ),
        Tool(
            name="search_objects",
            description="Search objects by name fragment. Filtering by stage requires project_name.",
            inputSchema={
                "type": "object",
                "properties": {
                    "object_name": {"type": "string", "description": "Name fragment (case-insensitive)"},
                    "project_name": {"type": "string", "description": "Restrict to this project"},
                    "stage_name": {"type": "string", "description": "Restrict to this stage (needs project_name)"},
                    "responsible_name": {"type": "string", "description": "Filter by responsible (name or email)"},
                    **_PAGINATION
                }
            }
        ),
        Tool(
            name="update_object",
            description="Update an object found by its exact current name within the project "
                       "(and stage, if given). new_stage_name moves it to another stage of the same project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "current_name": {"type": "string", "description": "Exact current object name"},
                    "project_name": {"type": "string", "description": "Project name"},
                    "stage_name": {"type": "string", "description": "Current stage (to disambiguate)"},
                    "new_name": {"type": "string", "description": "New object name"},
                    "object_description": {"type": "string", "description": "New description"},
                    "new_stage_name": {"type": "string", "description": "Move to this stage"},
                    "responsible_name": {"type": "string", "description": "New responsible (name or email)"},
                    "start_date": {"type": "string", "description": f"New start date. {DATE_HINT}"},
                    "end_date": {"type": "string", "description": f"New end date. {DATE_HINT}"}
                },
                "required": ["current_name", "project_name"]
            }
        ),
        Tool(
            name="delete_object",
            description="Delete an object. Refused while it has sections unless cascade=true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "object_name": {"type": "string", "description": "Exact object name"},
                    "project_name": {"type": "string", "description": "Project name"},
                    "stage_name": {"type": "string", "description": "Stage (to disambiguate)"},
                    "cascade": {"type": "boolean", "description": "Also delete its sections"}
                },
                "required": ["object_name", "project_name"]
            }
        ),

        # ============================================================================
        # Section Tools
        # ============================================================================
        Tool(
            name="create_section",
            description="Create a section in an object. Section names are unique within an object.",
            inputSchema={
                "type": "object",
                "properties": {
                    "section_name": {"type": "string", "description": "Section name"},
                    "project_name": {"type": "string", "description": "Project name"},
                    "object_name": {"type": "string", "description": "Object name within the project"},
                    "stage_name": {"type": "string", "description": "Stage (to disambiguate the object)"},
                    "section_description": {"type": "string", "description": "Section description"},
                    "section_type": {"type": "string", "description": "Section type tag"},
                    "responsible_name": {"type": "string", "description": "Responsible person (name or email)"},
                    "start_date": {"type": "string", "description": f"Start date. {DATE_HINT}"},
                    "end_date": {"type": "string", "description": f"End date. {DATE_HINT}"}
                },
                "required": ["section_name", "project_name", "object_name"]
            }
        ),
        Tool(
            name="search_sections",
            description="Search sections by name fragment, project, object, type or responsible.",
            inputSchema={
                "type": "object",
                "properties": {
                    "section_name": {"type": "string", "description": "Name fragment (case-insensitive)"},
                    "project_name": {"type": "string", "description": "Restrict to this project"},
                    "object_name": {"type": "string", "description": "Restrict to this object"},
                    "section_type": {"type": "string", "description": "Type fragment"},
                    "responsible_name": {"type": "string", "description": "Filter by responsible (name or email)"},
                    **_PAGINATION
                }
            }
        ),
        Tool(
            name="update_section",
            description="Update a section found by its exact current name within the project "
                       "(and object, if given).",
            inputSchema={
                "type": "object",
                "properties": {
                    "current_name": {"type": "string", "description": "Exact current section name"},
                    "project_name": {"type": "string", "description": "Project name"},
                    "object_name": {"type": "string", "description": "Object (to disambiguate)"},
                    "new_name": {"type": "string", "description": "New section name"},
                    "section_description": {"type": "string", "description": "New description"},
                    "section_type": {"type": "string", "description": "New type tag"},
                    "responsible_name": {"type": "string", "description": "New responsible (name or email)"},
                    "start_date": {"type": "string", "description": f"New start date. {DATE_HINT}"},
                    "end_date": {"type": "string", "description": f"New end date. {DATE_HINT}"}
                },
                "required": ["current_name", "project_name"]
            }
        ),
        Tool(
            name="delete_section",
            description="Delete a section.",
            inputSchema={
                "type": "object",
                "properties": {
                    "section_name": {"type": "string", "description": "Exact section name"},
                    "project_name": {"type": "string", "description": "Project name"},
                    "object_name": {"type": "string", "description": "Object (to disambiguate)"}
                },
                "required": ["section_name", "project_name"]
            }
        ),

        # ============================================================================
        # People Tools
        # ============================================================================
        Tool(
            name="search_users",
            description="Search active users by first name, last name, full name or email. "
                       "'Ivan Petrov' also matches 'Petrov Ivan'. Shows current workload.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Name or email fragment (max 50 characters)"},
                    "limit": {"type": "integer", "description": "Maximum number of results (default: 10)"}
                }
            }
        ),
        Tool(
            name="search_employee_full_info",
            description="Full profile of one employee: department, position, projects managed or led, "
                       "current workload grouped by project and object.",
            inputSchema={
                "type": "object",
                "properties": {
                    "employee_name": {"type": "string", "description": "Employee name or email"}
                },
                "required": ["employee_name"]
            }
        ),
        Tool(
            name="search_by_responsible",
            description="Objects and sections a person is responsible for.",
            inputSchema={
                "type": "object",
                "properties": {
                    "responsible_name": {"type": "string", "description": "Responsible person (name or email)"},
                    "project_name": {"type": "string", "description": "Restrict to this project"},
                    "limit": {"type": "integer", "description": "Maximum results per kind (default: 20)"}
                },
                "required": ["responsible_name"]
            }
        ),
        Tool(
            name="get_employee_workload",
            description="Sections an employee works on (as responsible or through loadings), "
                       "grouped by project and object, with loading rates.",
            inputSchema={
                "type": "object",
                "properties": {
                    "employee_name": {"type": "string", "description": "Employee name or email"},
                    "project_name": {"type": "string", "description": "Restrict to this project"},
                    "include_completed": {
                        "type": "boolean",
                        "description": "Include sections whose end date has passed (default: false)"
                    }
                },
                "required": ["employee_name"]
            }
        ),
        Tool(
            name="get_project_team",
            description="Project manager, lead engineer and responsibles grouped by department.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_name": {"type": "string", "description": "Exact project name"}
                },
                "required": ["project_name"]
            }
        ),
        Tool(
            name="get_project_sections",
            description="Machine-readable list of a project's sections with responsible emails. "
                       "Returns one JSON object per section: section_id, section_name, section_responsible_email.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_name": {"type": "string", "description": "Exact project name"}
                },
                "required": ["project_name"]
            }
        ),

        # ============================================================================
        # Notes and Reports
        # ============================================================================
        Tool(
            name="create_note",
            description="Save a note authored by a user.",
            inputSchema={
                "type": "object",
                "properties": {
                    "author": {"type": "string", "description": "Author: user id, name or email"},
                    "content": {"type": "string", "description": "Note text"}
                },
                "required": ["author", "content"]
            }
        ),
        Tool(
            name="generate_project_report",
            description="Plan/fact report of hours and amounts logged on a project's sections "
                       "over a period, optionally for one department.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_name": {"type": "string", "description": "Project name or fragment"},
                    "date_from": {"type": "string", "description": "Start of period, yyyy-mm-dd (default: yesterday)"},
                    "date_to": {"type": "string", "description": "End of period, yyyy-mm-dd (default: yesterday)"},
                    "include_comments": {"type": "boolean", "description": "Include section comments (default: false)"},
                    "department_name": {"type": "string", "description": "Department to filter by"},
                    "filter_by_department": {
                        "type": "boolean",
                        "description": "Only count work logged by department_name's employees (default: false)"
                    }
                },
                "required": ["project_name"]
            }
        ),
    ]
