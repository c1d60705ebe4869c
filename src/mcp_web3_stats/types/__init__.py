"""Wire types for JSON-RPC 2.0 and the subset of MCP this server speaks."""

from mcp_web3_stats.types.base import LATEST_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS, MCPModel, Result
from mcp_web3_stats.types.common import ClientCapabilities, Implementation, ServerCapabilities
from mcp_web3_stats.types.content import ContentBlock, TextContent
from mcp_web3_stats.types.initialize import InitializeRequestParams, InitializeResult
from mcp_web3_stats.types.json_rpc import (
    AUTHENTICATION_REQUIRED,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    RESOURCE_NOT_FOUND,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    RequestId,
    dump_message,
    error_envelope,
)
from mcp_web3_stats.types.prompts import (
    GetPromptRequestParams,
    GetPromptResult,
    ListPromptsResult,
    Prompt,
    PromptArgument,
    PromptMessage,
)
from mcp_web3_stats.types.resources import (
    ListResourcesResult,
    ReadResourceRequestParams,
    ReadResourceResult,
    Resource,
    TextResourceContents,
)
from mcp_web3_stats.types.tools import CallToolRequestParams, CallToolResult, ListToolsResult, Tool, ToolAnnotations

__all__ = [
    "AUTHENTICATION_REQUIRED",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "LATEST_PROTOCOL_VERSION",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "RESOURCE_NOT_FOUND",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "CallToolRequestParams",
    "CallToolResult",
    "ClientCapabilities",
    "ContentBlock",
    "ErrorData",
    "GetPromptRequestParams",
    "GetPromptResult",
    "Implementation",
    "InitializeRequestParams",
    "InitializeResult",
    "JSONRPCErrorResponse",
    "JSONRPCMessage",
    "JSONRPCMessageAdapter",
    "JSONRPCNotification",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCResultResponse",
    "ListPromptsResult",
    "ListResourcesResult",
    "ListToolsResult",
    "MCPModel",
    "Prompt",
    "PromptArgument",
    "PromptMessage",
    "ReadResourceRequestParams",
    "ReadResourceResult",
    "RequestId",
    "Resource",
    "Result",
    "ServerCapabilities",
    "TextContent",
    "TextResourceContents",
    "Tool",
    "ToolAnnotations",
    "dump_message",
    "error_envelope",
]
