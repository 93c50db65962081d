"""Dual-pass chat pipeline.

Pass 1 runs with tools only (temperature 0, a tool call is mandatory) and
streams its text, tool calls, tool results and annotations. Pass 2 gets the
conversation plus Pass 1's response messages, has no tools, and streams the
final answer. Both passes write to one ``DataStream``; the consumer forwards
everything except Pass 1's finish, so the request ends with exactly one
terminal event.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from travel_tools.context import RequestContext, ToolContext
from travel_tools.errors import InvalidToolArgumentsError, NoSuchToolError
from travel_tools.registry import ToolRegistry

from .config import CONFIG
from .events import DataStream, StreamEvent
from .groups import GroupConfig, resolve_group
from .llm import LanguageModel, LanguageModelError, ModelChunk
from .messages import CoreMessage, Message, ToolCall, ToolResult, args_as_dict, convert_to_core_messages
from .repair import RepairRequest, ToolCallRepairer
from .smoothing import smooth_stream


GENERIC_ERROR = "Something went wrong while planning your trip. Please try again."
TOOL_FAILURE = "{tool} failed: the service is unavailable"


class PipelineState(str, Enum):
    IDLE = "idle"
    PASS1_RUNNING = "pass1_running"
    PASS1_COMPLETE = "pass1_complete"
    PASS2_RUNNING = "pass2_running"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.PASS1_RUNNING, PipelineState.FAILED},
    PipelineState.PASS1_RUNNING: {PipelineState.PASS1_COMPLETE, PipelineState.FAILED},
    PipelineState.PASS1_COMPLETE: {PipelineState.PASS2_RUNNING, PipelineState.FAILED},
    PipelineState.PASS2_RUNNING: {PipelineState.DONE, PipelineState.FAILED},
    PipelineState.DONE: set(),
    PipelineState.FAILED: set(),
}


@dataclass
class PipelineRun:
    messages: List[Message]
    model: str
    group: GroupConfig
    context: RequestContext
    state: PipelineState = PipelineState.IDLE
    history: List[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])

    @property
    def pass_number(self) -> int:
        return 2 if self.state in (PipelineState.PASS2_RUNNING, PipelineState.DONE) else 1

    def transition(self, new_state: PipelineState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {new_state.value}")
        logging.info("Pipeline %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)


@dataclass
class Invocation:
    call: ToolCall
    result: ToolResult


@dataclass
class PassResult:
    finish_reason: str
    usage: Dict[str, int]
    messages: List[CoreMessage]


class DualPassOrchestrator:
    def __init__(
        self,
        llm: LanguageModel,
        registry: ToolRegistry,
        http: httpx.AsyncClient,
        repairer: Optional[ToolCallRepairer] = None,
        smooth_delay_ms: int = CONFIG.smooth_delay_ms,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.http = http
        self.repairer = repairer or ToolCallRepairer(llm)
        self.smooth_delay_ms = smooth_delay_ms

    async def stream(
        self,
        messages: List[Message],
        *,
        model: str,
        group: Optional[str],
        context: RequestContext,
    ) -> AsyncIterator[StreamEvent]:
        run = PipelineRun(messages=messages, model=model, group=resolve_group(group), context=context)
        logging.info(
            "Chat request model=%s group=%s timezone=%s messages=%d",
            model, run.group.group_id, context.timezone, len(messages),
        )
        channel = DataStream()
        producer = asyncio.create_task(self._produce(run, channel))
        try:
            async for event in channel.events():
                if event.type == "finish" and event.pass_number == 1:
                    continue
                yield event
        finally:
            if not producer.done():
                logging.info("Client went away, cancelling pipeline in state %s", run.state.value)
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass

    async def _produce(self, run: PipelineRun, channel: DataStream) -> None:
        try:
            core = convert_to_core_messages(run.messages)
            run.transition(PipelineState.PASS1_RUNNING)
            tool_pass = await self._run_tool_pass(run, core, channel)
            run.transition(PipelineState.PASS1_COMPLETE)
            run.transition(PipelineState.PASS2_RUNNING)
            await self._run_response_pass(run, core + tool_pass.messages, channel)
            run.transition(PipelineState.DONE)
        except LanguageModelError as e:
            logging.exception("Model provider failed in %s: %s", run.state.value, e)
            self._fail(run, channel)
        except Exception:
            logging.exception("Pipeline failed in %s", run.state.value)
            self._fail(run, channel)
        finally:
            channel.close()

    def _fail(self, run: PipelineRun, channel: DataStream) -> None:
        number = run.pass_number
        run.transition(PipelineState.FAILED)
        channel.write(StreamEvent("error", {"content": GENERIC_ERROR}, number))

    async def _run_tool_pass(self, run: PipelineRun, core: List[CoreMessage], channel: DataStream) -> PassResult:
        channel.write(StreamEvent("step-start", {"pass": 1}, 1))
        text: List[str] = []
        tasks: List["asyncio.Task[Invocation]"] = []
        finish: Optional[ModelChunk] = None
        try:
            chunks = self.llm.stream_text(
                model=run.model,
                system=run.group.tool_prompt(run.context.today_label()),
                messages=core,
                tools=self.registry.subset(run.group.tool_names),
                tool_choice="required",
                temperature=0,
            )
            async for chunk in chunks:
                if chunk.type == "text-delta":
                    text.append(chunk.text)
                    channel.write(StreamEvent("text-delta", {"content": chunk.text}, 1))
                elif chunk.type == "reasoning":
                    channel.write(StreamEvent("reasoning", {"content": chunk.text}, 1))
                elif chunk.type == "tool-call":
                    logging.info("Called Tool: %s", chunk.tool_name)
                    tasks.append(asyncio.create_task(self._invoke(run, chunk, channel)))
                elif chunk.type == "finish":
                    finish = chunk
            invocations = await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        messages: List[CoreMessage] = []
        calls = [i.call for i in invocations]
        if text or calls:
            messages.append(CoreMessage(role="assistant", text="".join(text), tool_calls=calls))
        if invocations:
            messages.append(CoreMessage(role="tool", tool_results=[i.result for i in invocations]))

        result = PassResult(
            finish_reason=finish.finish_reason if finish else "unknown",
            usage=finish.usage if finish else {},
            messages=messages,
        )
        logging.info("Fin reason[1]: %s (%d tool calls)", result.finish_reason, len(calls))
        summary = {"finish_reason": result.finish_reason, "usage": result.usage}
        channel.write(StreamEvent("step-finish", summary, 1))
        channel.write(StreamEvent("finish", summary, 1))
        return result

    async def _invoke(self, run: PipelineRun, chunk: ModelChunk, channel: DataStream) -> Invocation:
        call_id, name = chunk.tool_call_id, chunk.tool_name
        ids = {"tool_call_id": call_id, "tool_name": name}

        try:
            tool = self.registry.get(name, run.group.tool_names)
        except NoSuchToolError as e:
            # Not repairable: the model named a tool it was never offered
            logging.warning("%s", e)
            channel.write(StreamEvent("tool-error", {**ids, "content": str(e)}, 1))
            return Invocation(
                ToolCall(call_id, name, args_as_dict(chunk.args)),
                ToolResult(call_id, name, {"error": str(e)}, is_error=True),
            )

        try:
            params = tool.validate(chunk.args)
        except InvalidToolArgumentsError as e:
            try:
                params = await self.repairer.repair(tool, RepairRequest.from_error(tool, e, run.context))
            except InvalidToolArgumentsError as repair_error:
                args = args_as_dict(chunk.args)
                channel.write(StreamEvent("tool-call", {**ids, "args": args}, 1))
                payload = {"error": f"Invalid arguments for {name}: {repair_error.message}"}
                channel.write(StreamEvent("tool-result", {**ids, "args": args, "result": payload, "is_error": True}, 1))
                return Invocation(ToolCall(call_id, name, args), ToolResult(call_id, name, payload, is_error=True))

        args = params.model_dump(mode="json")
        channel.write(StreamEvent("tool-call", {**ids, "args": args}, 1))
        ctx = ToolContext(
            request=run.context,
            http=self.http,
            llm=self.llm,
            model=run.model,
            annotate=channel.annotator(1),
        )
        try:
            result: Any = await tool.execute(params, ctx)
            is_error = False
        except Exception as e:
            logging.warning("Tool %s failed: %s", name, e)
            result = {"error": TOOL_FAILURE.format(tool=name)}
            is_error = True
        channel.write(StreamEvent("tool-result", {**ids, "args": args, "result": result, "is_error": is_error}, 1))
        return Invocation(ToolCall(call_id, name, args), ToolResult(call_id, name, result, is_error=is_error))

    async def _run_response_pass(self, run: PipelineRun, core: List[CoreMessage], channel: DataStream) -> PassResult:
        channel.write(StreamEvent("step-start", {"pass": 2}, 2))
        finish: Optional[ModelChunk] = None
        text: List[str] = []
        chunks = self.llm.stream_text(
            model=run.model,
            system=run.group.response_prompt(run.context.today_label()),
            messages=core,
        )
        async for chunk in smooth_stream(chunks, delay_ms=self.smooth_delay_ms):
            if chunk.type == "text-delta":
                text.append(chunk.text)
                channel.write(StreamEvent("text-delta", {"content": chunk.text}, 2))
            elif chunk.type == "reasoning":
                channel.write(StreamEvent("reasoning", {"content": chunk.text}, 2))
            elif chunk.type == "finish":
                finish = chunk

        result = PassResult(
            finish_reason=finish.finish_reason if finish else "unknown",
            usage=finish.usage if finish else {},
            messages=[CoreMessage(role="assistant", text="".join(text))],
        )
        logging.info("Fin reason[2]: %s", result.finish_reason)
        summary = {"finish_reason": result.finish_reason, "usage": result.usage}
        channel.write(StreamEvent("step-finish", summary, 2))
        channel.write(StreamEvent("finish", summary, 2))
        return result
