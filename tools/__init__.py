"""
tools — agent-facing surface of the connection hub.

    from tools.connection_tool import ConnectionTool

    result = await tool.run("vercel", "list_projects", {})
"""
