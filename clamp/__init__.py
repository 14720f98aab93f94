"""Clamp: the conversational assistant built into a field-service business app.

Architecture Overview
=====================

Clamp is a stateless tool-use loop built as a **LangGraph** state machine with
two core nodes:

1. **model**: calls Claude with the conversation history, the system
   instructions for the request's mode and the mode's active tools.

2. **tools**: runs every tool call of the last assistant turn through the
   dispatcher, within the caller's tenant, and feeds the results back.

Routing: model → (tool_use?) → tools → model (until a final answer or the
tool-iteration cap → END)

Key Design Decisions
--------------------
- **Stateless**: the web app resends the full history every turn; nothing is
  checkpointed between requests.
- **Two modes**: ``chat`` gets every tool and the conversational persona;
  ``search`` only gets read-only tools and answers in one line, with the
  matching records returned as structured search results.
- **Closed tool set**: tools are a ``ToolName`` enum with a pydantic input
  model each; unknown names, bad input and executor failures all become
  ``{"error": ...}`` results instead of exceptions.
- **Document numbers**: job/quote/invoice numbers come from a per-tenant
  counter updated in a single store transaction (optimistic concurrency on
  DynamoDB), so concurrent creates never share a number.
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``clamp/agent.py``: LangGraph StateGraph, ``ClampAgent`` and wiring
- ``clamp/config.py``: settings from environment variables / SSM
- ``clamp/policy.py``: modes, active tools, request limits
- ``clamp/prompts.py``: system prompts per mode
- ``clamp/assembler.py``: reply text, action cards and search hits
- ``clamp/server.py``: FastAPI application
- ``clamp/main.py``: CLI chat interface
- ``clamp/services/``: data store, sequence numbers, completion API, metrics
- ``clamp/tools/``: tool registry, input schemas, executors and dispatcher
- ``clamp/api/``: FastAPI routes, auth and Pydantic schemas
"""
