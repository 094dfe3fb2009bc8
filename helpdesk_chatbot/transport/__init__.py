"""
Transport Layer - Helpdesk collaborator contracts and adapters.
"""

from helpdesk_chatbot.transport.interface import MessageTransport, Ticket, TicketGateway

__all__ = ["MessageTransport", "Ticket", "TicketGateway"]
